"""WebSocket message envelope and a hub of per-user connections."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Union

logger = logging.getLogger(__name__)

WRITE_WAIT = 10.0
PONG_WAIT = 60.0
PING_PERIOD = PONG_WAIT * 9 / 10
MAX_MESSAGE_SIZE = 512
SEND_BUFFER = 256

Handler = Callable[[str, bytes], Union[None, Awaitable[None]]]


class Connection(Protocol):
    async def send(self, data: bytes) -> None: ...
    async def recv(self) -> bytes: ...
    async def ping(self) -> None: ...
    async def close(self) -> None: ...


@dataclass
class Message:
    """Envelope: action name, raw JSON data, optional sequence id."""

    action: str
    data: bytes = b"null"
    seq: str = ""

    def decode_data(self) -> Any:
        return json.loads(self.data) if self.data else None


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True)


def new_message(action: str, data: Any) -> bytes:
    """Encode an outgoing message."""
    return ('{"action":' + _dumps(action) + ',"data":' + _dumps(data) + "}").encode()


def parse_message(payload: bytes | str) -> Message:
    """Decode an incoming message; raises ValueError on malformed input."""
    obj = json.loads(payload)
    if not isinstance(obj, dict):
        raise ValueError("message must be a JSON object")
    data = obj.get("data")
    return Message(
        action=str(obj.get("action", "")),
        data=_dumps(data).encode(),
        seq=str(obj.get("seq", "")),
    )


class Client:
    """One user's connection with its outgoing queue and pump tasks."""

    def __init__(self, hub: Hub, conn: Connection, uid: str, handler: Handler | None) -> None:
        self.hub = hub
        self.conn = conn
        self.uid = uid
        self.send: asyncio.Queue[bytes | None] = asyncio.Queue(SEND_BUFFER)
        self.handler = handler
        self.tasks: list[asyncio.Task[None]] = []

    async def read_pump(self) -> None:
        try:
            while True:
                try:
                    payload = await self.conn.recv()
                except Exception:
                    break
                if len(payload) > MAX_MESSAGE_SIZE:
                    break
                if self.handler is not None:
                    result = self.handler(self.uid, payload)
                    if inspect.isawaitable(result):
                        await result
        finally:
            self.hub._unregister_client(self)

    async def write_pump(self) -> None:
        try:
            while True:
                try:
                    message = await asyncio.wait_for(self.send.get(), PING_PERIOD)
                except asyncio.TimeoutError:
                    await asyncio.wait_for(self.conn.ping(), WRITE_WAIT)
                    continue
                if message is None:
                    return
                await asyncio.wait_for(self.conn.send(message), WRITE_WAIT)
        except Exception as exc:
            logger.debug("write to %s failed: %s", self.uid, exc)
        finally:
            with contextlib.suppress(Exception):
                await self.conn.close()


class Hub:
    """Keeps the active client of every user."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}

    def register(self, uid: str, conn: Connection, handler: Handler | None) -> Client:
        """Store a client and start its pumps; must run inside an event loop."""
        loop = asyncio.get_running_loop()
        client = Client(self, conn, uid, handler)
        self._clients[uid] = client
        client.tasks = [
            loop.create_task(client.write_pump()),
            loop.create_task(client.read_pump()),
        ]
        return client

    def _unregister_client(self, client: Client) -> None:
        if self._clients.get(client.uid) is client:
            self.unregister(client.uid)

    def unregister(self, uid: str) -> None:
        client = self._clients.pop(uid, None)
        if client is not None:
            with contextlib.suppress(asyncio.QueueFull):
                client.send.put_nowait(None)

    def send_to_user(self, uid: str, msg: bytes) -> bool:
        """Queue a message for an online user; False if offline or backlogged."""
        client = self._clients.get(uid)
        if client is None:
            return False
        try:
            client.send.put_nowait(msg)
        except asyncio.QueueFull:
            logger.warning("send buffer full for %s", uid)
            return False
        return True

    def is_online(self, uid: str) -> bool:
        return uid in self._clients