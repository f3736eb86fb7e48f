"""Redis-backed caches for captcha answers and one-time passwords."""

from __future__ import annotations

import contextlib
from datetime import timedelta
from typing import Any, Union

CAPTCHA_TTL = timedelta(minutes=10)
CAPTCHA_PREFIX = "captcha:"

Expiry = Union[timedelta, int, float]


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _millis(expire: Expiry) -> int:
    if isinstance(expire, timedelta):
        return int(expire.total_seconds() * 1000)
    return int(expire * 1000)


class CaptchaStore:
    """Stores captcha answers under ``captcha:{id}`` for ten minutes."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @staticmethod
    def _key(captcha_id: str) -> str:
        return CAPTCHA_PREFIX + captcha_id

    def set(self, captcha_id: str, value: str) -> None:
        self.client.set(self._key(captcha_id), value, ex=CAPTCHA_TTL)

    def get(self, captcha_id: str, clear: bool) -> str:
        """Return the stored answer, or "" if it is missing or unreadable."""
        key = self._key(captcha_id)
        try:
            value = self.client.get(key)
        except Exception:
            return ""
        if value is None:
            return ""
        if clear:
            with contextlib.suppress(Exception):
                self.client.delete(key)
        return _text(value)

    def verify(self, captcha_id: str, answer: str, clear: bool) -> bool:
        """Compare the stored answer with ``answer``, ignoring case."""
        return self.get(captcha_id, clear).lower() == answer.lower()


class OtpCacheMiss(KeyError):
    """No value is cached under the key."""


class OtpCache:
    """Key-value cache used for one-time-password codes and counters."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def set(self, key: str, value: str, expire: Expiry) -> None:
        """Store a value; a zero expiry keeps it forever."""
        ms = _millis(expire)
        kwargs = {"px": ms} if ms > 0 else {}
        self.client.set(key, value, **kwargs)

    def get(self, key: str) -> str:
        value = self.client.get(key)
        if value is None:
            raise OtpCacheMiss(key)
        return _text(value)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def exists(self, key: str) -> bool:
        return int(self.client.exists(key)) > 0

    def set_nx(self, key: str, value: str, expire: Expiry) -> bool:
        """Store only if absent; True when the value was stored."""
        ms = _millis(expire)
        kwargs = {"px": ms} if ms > 0 else {}
        return bool(self.client.set(key, value, nx=True, **kwargs))

    def incr(self, key: str, expire: Expiry) -> int:
        """Increment a counter and reset its expiry in one transaction."""
        pipe = self.client.pipeline(transaction=True)
        pipe.incr(key)
        pipe.pexpire(key, _millis(expire))
        results = pipe.execute()
        return int(results[0])