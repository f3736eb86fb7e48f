"""Per-request debug information collected for non-production responses."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Any, Iterator

from . import env

_debug_info: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "debug-info", default=None
)


def from_context() -> dict[str, Any] | None:
    """Return the current request's debug mapping, or None if there is none."""
    return _debug_info.get()


def add_debug_value(key: str, value: Any) -> None:
    """Record a value; creates the mapping in the current context if needed."""
    info = _debug_info.get()
    if info is None:
        info = {}
        _debug_info.set(info)
    info[key] = value


@contextmanager
def debug_scope() -> Iterator[dict[str, Any]]:
    """Give the enclosed request a fresh debug mapping."""
    info: dict[str, Any] = {}
    token = _debug_info.set(info)
    try:
        yield info
    finally:
        _debug_info.reset(token)


def is_debug() -> bool:
    return not env.is_prod()