"""Process-wide deployment environment (dev, test or prod)."""

from __future__ import annotations

import enum
import threading


class Env(str, enum.Enum):
    """Known deployment environments."""

    DEV = "dev"
    TEST = "test"
    PROD = "prod"


_lock = threading.Lock()
_current: str = Env.DEV.value
_initialized = False


def init(name: str | Env) -> None:
    """Set the environment once; later calls are ignored."""
    global _current, _initialized
    with _lock:
        if _initialized:
            return
        _current = name.value if isinstance(name, Env) else str(name)
        _initialized = True


def is_dev() -> bool:
    return _current == Env.DEV.value


def is_test() -> bool:
    return _current == Env.TEST.value


def is_prod() -> bool:
    return _current == Env.PROD.value


def get() -> Env | str:
    """Return the current environment, or its raw name if it is not a known one."""
    try:
        return Env(_current)
    except ValueError:
        return _current