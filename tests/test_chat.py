import asyncio
import json
import logging
from types import SimpleNamespace

import pytest

from bubbleadmin.chat import ChatRepo, ChatService, WebsocketService
from bubbleadmin.ws import Hub, parse_message


class _Conn:
    def __init__(self):
        self._never = asyncio.Event()

    async def send(self, data):
        pass

    async def recv(self):
        await self._never.wait()
        return b""

    async def ping(self):
        pass

    async def close(self):
        pass


class _UseCase:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def process_message(self, from_uid, to_uid, content):
        self.calls.append((from_uid, to_uid, content))
        if self.fail:
            raise RuntimeError("db down")
        return SimpleNamespace(id="m-1", from_uid=from_uid, to_uid=to_uid, content=content)


def _drain(client):
    out = []
    while not client.send.empty():
        item = client.send.get_nowait()
        if item is not None:
            out.append(parse_message(item))
    return out


async def _close(hub, *clients):
    for client in clients:
        hub.unregister(client.uid)
        for task in client.tasks:
            task.cancel()
        await asyncio.gather(*client.tasks, return_exceptions=True)


def _payload(obj):
    return json.dumps(obj).encode()


@pytest.mark.asyncio
async def test_handle_chat_acks_sender_and_pushes_receiver():
    hub = Hub()
    alice = hub.register("alice", _Conn(), None)
    bob = hub.register("bob", _Conn(), None)
    use_case = _UseCase()
    try:
        ChatService(hub, use_case).handle_chat(
            "alice", _payload({"to_uid": "bob", "content": "hi"})
        )
        sent = _drain(alice)
        received = _drain(bob)
    finally:
        await _close(hub, alice, bob)
    assert use_case.calls == [("alice", "bob", "hi")]
    assert [(m.action, m.decode_data()) for m in sent] == [("chat_ack", {"msg_id": "m-1"})]
    assert [(m.action, m.decode_data()) for m in received] == [
        ("new_chat", {"from_uid": "alice", "content": "hi"})
    ]


@pytest.mark.asyncio
async def test_handle_chat_failure_reports_error_only_to_sender():
    hub = Hub()
    alice = hub.register("alice", _Conn(), None)
    bob = hub.register("bob", _Conn(), None)
    try:
        ChatService(hub, _UseCase(fail=True)).handle_chat(
            "alice", _payload({"to_uid": "bob", "content": "hi"})
        )
        sent = _drain(alice)
        received = _drain(bob)
    finally:
        await _close(hub, alice, bob)
    assert [(m.action, m.decode_data()) for m in sent] == [("error", {"msg": "发送失败"})]
    assert received == []


@pytest.mark.asyncio
async def test_handle_chat_with_offline_receiver_still_acks():
    hub = Hub()
    alice = hub.register("alice", _Conn(), None)
    try:
        ChatService(hub, _UseCase()).handle_chat(
            "alice", _payload({"to_uid": "carol", "content": "hey"})
        )
        sent = _drain(alice)
    finally:
        await _close(hub, alice)
    assert [m.action for m in sent] == ["chat_ack"]
    assert hub.is_online("carol") is False


def test_handle_chat_with_malformed_data_passes_empty_fields():
    use_case = _UseCase()
    ChatService(Hub(), use_case).handle_chat("alice", b"not json")
    ChatService(Hub(), use_case).handle_chat("alice", b"[1, 2]")
    assert use_case.calls == [("alice", "", ""), ("alice", "", "")]


@pytest.mark.asyncio
async def test_dispatch_ping_replies_pong():
    hub = Hub()
    alice = hub.register("alice", _Conn(), None)
    service = WebsocketService(hub, ChatService(hub, _UseCase()), lambda t: "alice")
    try:
        service.dispatch("alice", _payload({"action": "ping"}))
        sent = _drain(alice)
    finally:
        await _close(hub, alice)
    assert [(m.action, m.decode_data()) for m in sent] == [("pong", {"reply": "alive"})]


@pytest.mark.asyncio
async def test_dispatch_chat_routes_to_chat_service():
    hub = Hub()
    alice = hub.register("alice", _Conn(), None)
    use_case = _UseCase()
    service = WebsocketService(hub, ChatService(hub, use_case), lambda t: "alice")
    try:
        service.dispatch(
            "alice",
            _payload({"action": "chat", "data": {"to_uid": "bob", "content": "yo"}}),
        )
        sent = _drain(alice)
    finally:
        await _close(hub, alice)
    assert use_case.calls == [("alice", "bob", "yo")]
    assert [m.action for m in sent] == ["chat_ack"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [b"{broken", _payload({"action": "dance"})])
async def test_dispatch_ignores_bad_or_unknown_messages(payload):
    hub = Hub()
    alice = hub.register("alice", _Conn(), None)
    use_case = _UseCase()
    service = WebsocketService(hub, ChatService(hub, use_case), lambda t: "alice")
    try:
        service.dispatch("alice", payload)
        sent = _drain(alice)
    finally:
        await _close(hub, alice)
    assert sent == []
    assert use_case.calls == []


def test_authenticate_returns_subject():
    seen = []

    def parser(token):
        seen.append(token)
        return "1001"

    service = WebsocketService(Hub(), ChatService(Hub(), _UseCase()), parser)
    assert service.authenticate("token") == "1001"
    assert seen == ["token"]


def test_authenticate_rejects_empty_and_invalid_tokens():
    calls = []

    def parser(token):
        calls.append(token)
        raise ValueError("bad token")

    service = WebsocketService(Hub(), ChatService(Hub(), _UseCase()), parser)
    assert service.authenticate("") == ""
    assert calls == []
    assert service.authenticate("token") == ""
    assert calls == ["token"]


def test_repo_logs_saved_message(caplog):
    msg = SimpleNamespace(id="m-9", from_uid="a", to_uid="b", content="hello")
    with caplog.at_level(logging.INFO, logger="bubbleadmin.chat"):
        result = ChatRepo().save_message(msg)
    assert result is None
    assert "m-9" in caplog.text
    assert "hello" in caplog.text


def test_repo_logs_status(caplog):
    with caplog.at_level(logging.INFO, logger="bubbleadmin.chat"):
        ChatRepo().update_user_status("u1", True)
        ChatRepo().update_user_status("u2", False)
    assert "上线" in caplog.records[0].getMessage()
    assert "离线" in caplog.records[1].getMessage()