"""Issued-token records and their Redis-backed store."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    return text.replace("+00:00", "Z")


def _parse_time(text: str) -> datetime:
    text = text.replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


@dataclass
class UserToken:
    """A persisted JWT and its revocation state."""

    jti: str
    user_id: str
    dept_id: int = 0
    tenant_id: int = 0
    issued_at: datetime = datetime(1, 1, 1, tzinfo=timezone.utc)
    expires_at: datetime = datetime(1, 1, 1, tzinfo=timezone.utc)
    token_str: str = ""
    revoked: bool = False
    revoke_reason: str = ""

    def to_json(self) -> bytes:
        return json.dumps(
            {
                "JTI": self.jti,
                "UserID": self.user_id,
                "DeptID": self.dept_id,
                "TenantID": self.tenant_id,
                "IssuedAt": _format_time(self.issued_at),
                "ExpiresAt": _format_time(self.expires_at),
                "TokenStr": self.token_str,
                "Revoked": self.revoked,
                "RevokeReason": self.revoke_reason,
            },
            ensure_ascii=False,
        ).encode()

    @classmethod
    def from_json(cls, data: bytes | str) -> UserToken:
        obj: dict[str, Any] = json.loads(data)
        return cls(
            jti=obj.get("JTI", ""),
            user_id=obj.get("UserID", ""),
            dept_id=int(obj.get("DeptID", 0)),
            tenant_id=int(obj.get("TenantID", 0)),
            issued_at=_parse_time(obj.get("IssuedAt", "0001-01-01T00:00:00Z")),
            expires_at=_parse_time(obj.get("ExpiresAt", "0001-01-01T00:00:00Z")),
            token_str=obj.get("TokenStr", ""),
            revoked=bool(obj.get("Revoked", False)),
            revoke_reason=obj.get("RevokeReason", ""),
        )


class TokenNotFoundError(KeyError):
    """No token stored under the given id."""


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisTokenStore:
    """Tokens under ``jwt:token:{jti}``, with a per-user set ``jwt:user:{id}:tokens``."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @staticmethod
    def _token_key(jti: str) -> str:
        return f"jwt:token:{jti}"

    @staticmethod
    def _user_set_key(user_id: str) -> str:
        return f"jwt:user:{user_id}:tokens"

    def save_token(self, token: UserToken) -> None:
        expires = token.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        ttl_ms = int((expires - datetime.now(timezone.utc)).total_seconds() * 1000)
        kwargs = {"px": ttl_ms} if ttl_ms > 0 else {}
        self.client.set(self._token_key(token.jti), token.to_json(), **kwargs)
        self.client.sadd(self._user_set_key(token.user_id), token.jti)

    def get_token(self, jti: str) -> UserToken:
        data = self.client.get(self._token_key(jti))
        if data is None:
            raise TokenNotFoundError(jti)
        return UserToken.from_json(data)

    def delete_user_token(self, user_id: str, jti: str) -> None:
        members = {_text(m) for m in self.client.smembers(self._user_set_key(user_id))}
        if jti in members:
            self.delete_token(jti)

    def delete_token(self, jti: str) -> None:
        try:
            token = self.get_token(jti)
        except (TokenNotFoundError, ValueError):
            pass
        else:
            self.client.srem(self._user_set_key(token.user_id), jti)
        self.client.delete(self._token_key(jti))

    def delete_user_tokens(self, user_id: str) -> None:
        user_key = self._user_set_key(user_id)
        keys = [self._token_key(_text(m)) for m in self.client.smembers(user_key)]
        if keys:
            self.client.delete(*keys)
        self.client.delete(user_key)

    def get_user_tokens(self, user_id: str) -> list[UserToken]:
        """Return the user's live tokens, pruning ids whose token is gone."""
        user_key = self._user_set_key(user_id)
        tokens: list[UserToken] = []
        for member in self.client.smembers(user_key):
            jti = _text(member)
            try:
                tokens.append(self.get_token(jti))
            except (TokenNotFoundError, ValueError):
                self.client.srem(user_key, jti)
        return tokens

    def block_user_tokens(self, user_id: str, reason: str) -> None:
        for token in self.get_user_tokens(user_id):
            try:
                self.save_token(replace(token, revoked=True, revoke_reason=reason))
            except Exception as exc:
                logger.error("Failed to block token %s: %s", token.jti, exc)