"""Chat over WebSocket: message persistence, chat handling and action dispatch."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Protocol

from .ws import Hub, new_message, parse_message

logger = logging.getLogger(__name__)


class _MessageLike(Protocol):
    id: str
    from_uid: str
    to_uid: str
    content: str


class _ChatUseCase(Protocol):
    def process_message(self, from_uid: str, to_uid: str, content: str) -> _MessageLike: ...


class ChatRepo:
    """Records chat messages and presence changes in the log."""

    def save_message(self, msg: _MessageLike) -> None:
        logger.info(
            "存储消息到数据库: [ID:%s] From:%s To:%s Content:%s",
            msg.id,
            msg.from_uid,
            msg.to_uid,
            msg.content,
        )

    def update_user_status(self, uid: str, online: bool) -> None:
        status = "上线" if online else "离线"
        logger.info("更新用户状态: 用户ID:%s 状态:%s", uid, status)


def _chat_request(data: bytes | str) -> tuple[str, str]:
    try:
        obj: Any = json.loads(data)
    except ValueError:
        return "", ""
    if not isinstance(obj, dict):
        return "", ""
    to_uid = obj.get("to_uid")
    content = obj.get("content")
    return (
        to_uid if isinstance(to_uid, str) else "",
        content if isinstance(content, str) else "",
    )


class ChatService:
    """Handles chat messages sent by connected users."""

    def __init__(self, hub: Hub, use_case: _ChatUseCase) -> None:
        self.hub = hub
        self.use_case = use_case

    def handle_chat(self, uid: str, data: bytes | str) -> None:
        """Process a message, acknowledge it to the sender and push it to the receiver."""
        to_uid, content = _chat_request(data)
        try:
            msg = self.use_case.process_message(uid, to_uid, content)
        except Exception as exc:
            logger.error("chat message from %s failed: %s", uid, exc)
            self.hub.send_to_user(uid, new_message("error", {"msg": "发送失败"}))
            return

        self.hub.send_to_user(uid, new_message("chat_ack", {"msg_id": msg.id}))
        self.hub.send_to_user(
            to_uid, new_message("new_chat", {"from_uid": uid, "content": content})
        )


class WebsocketService:
    """Authenticates socket users and routes their messages by action."""

    def __init__(
        self,
        hub: Hub,
        chat_service: ChatService,
        token_parser: Callable[[str], str],
    ) -> None:
        self.hub = hub
        self.chat_service = chat_service
        self.token_parser = token_parser

    def authenticate(self, token: str) -> str:
        """Return the token's subject, or "" when the token is missing or invalid."""
        if not token:
            return ""
        try:
            return self.token_parser(token) or ""
        except Exception:
            return ""

    def dispatch(self, uid: str, payload: bytes | str) -> None:
        """Route one incoming message to the handler for its action."""
        try:
            msg = parse_message(payload)
        except ValueError as exc:
            logger.error("unmarshal error: %s", exc)
            return

        if msg.action == "chat":
            self.chat_service.handle_chat(uid, msg.data)
        elif msg.action == "ping":
            self.hub.send_to_user(uid, new_message("pong", {"reply": "alive"}))
        else:
            logger.warning("unknown action: %s", msg.action)