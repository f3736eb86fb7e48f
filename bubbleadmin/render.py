"""Uniform JSON envelopes for successful and failed HTTP responses."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from . import debuginfo, errors, translator

logger = logging.getLogger(__name__)

_CONTENT_TYPE = "application/json"
_OMIT = object()


@dataclass
class Reply:
    """The body of every response: a code, a message, optional debug info and data."""

    code: int
    message: str
    debug: Any = _OMIT
    data: Any = _OMIT

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.debug is not _OMIT:
            body["debug"] = self.debug
        if self.data is not _OMIT:
            body["data"] = self.data
        return body

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=_jsonable).encode()


@dataclass(frozen=True)
class RenderedResponse:
    """Status, content type and encoded body ready to be written out."""

    status: int
    body: bytes
    content_type: str = _CONTENT_TYPE
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.body)


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def encode_response(data: Any) -> RenderedResponse:
    """Wrap a handler result in a success envelope."""
    reply = Reply(code=0, message="success", data=data)
    if debuginfo.is_debug():
        info = debuginfo.from_context()
        if info is not None:
            reply.debug = info
    return RenderedResponse(
        status=int(HTTPStatus.OK),
        body=reply.to_json(),
        headers={"Content-Type": _CONTENT_TYPE},
    )


def encode_error(err: BaseException) -> RenderedResponse:
    """Wrap an error in the envelope, translating validation failures."""
    se = errors.from_exception(err)
    assert se is not None
    message = se.message
    if se.reason == "INVALID_ARGUMENT":
        message = translator.translate(se)

    reply = Reply(code=se.code, message=message)
    status = int(HTTPStatus.INTERNAL_SERVER_ERROR) if se.code >= 500 else se.code
    logger.error("%s", err)
    return RenderedResponse(
        status=status,
        body=reply.to_json(),
        headers={"Content-Type": _CONTENT_TYPE},
    )