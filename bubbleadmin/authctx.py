"""Per-request identity and data-scope values carried in context variables."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_user_id: contextvars.ContextVar[int] = contextvars.ContextVar("x-user-id", default=0)
_tenant_id: contextvars.ContextVar[int] = contextvars.ContextVar("x-tenant-id", default=0)
_dept_id: contextvars.ContextVar[int] = contextvars.ContextVar("x-dept-id", default=0)
_data_scope: contextvars.ContextVar[str] = contextvars.ContextVar("x-data-scope", default="")
_auth_version: contextvars.ContextVar[int] = contextvars.ContextVar(
    "x-auth-version", default=0
)

_SCOPE_PRIORITY = {
    "ALL": 4,
    "DEPT_SUB": 3,
    "DEPT": 2,
    "SELF": 1,
}


@dataclass(frozen=True)
class ContextInfo:
    """All identity values of the current request."""

    user_id: int = 0
    tenant_id: int = 0
    dept_id: int = 0
    data_scope: str = ""
    auth_version: int = 0


@contextmanager
def _bind(*pairs: tuple[contextvars.ContextVar[Any], Any]) -> Iterator[None]:
    tokens = [(var, var.set(value)) for var, value in pairs]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


@contextmanager
def auth_context(info: ContextInfo) -> Iterator[None]:
    """Bind every identity value of ``info`` for the duration of the block."""
    with _bind(
        (_user_id, info.user_id),
        (_tenant_id, info.tenant_id),
        (_dept_id, info.dept_id),
        (_data_scope, info.data_scope),
        (_auth_version, info.auth_version),
    ):
        yield


def get_user_id() -> int:
    return _user_id.get()


def get_tenant_id() -> int:
    return _tenant_id.get()


def get_dept_id() -> int:
    return _dept_id.get()


def get_data_scope() -> str:
    return _data_scope.get()


def get_auth_version() -> int:
    return _auth_version.get()


def get_context_info() -> ContextInfo:
    return ContextInfo(
        user_id=get_user_id(),
        tenant_id=get_tenant_id(),
        dept_id=get_dept_id(),
        data_scope=get_data_scope(),
        auth_version=get_auth_version(),
    )


@contextmanager
def with_tenant_id(tenant_id: int) -> Iterator[None]:
    with _bind((_tenant_id, tenant_id)):
        yield


@contextmanager
def with_user_id(user_id: int) -> Iterator[None]:
    with _bind((_user_id, user_id)):
        yield


@contextmanager
def with_dept_id(dept_id: int) -> Iterator[None]:
    with _bind((_dept_id, dept_id)):
        yield


@contextmanager
def with_data_scope(data_scope: str) -> Iterator[None]:
    with _bind((_data_scope, data_scope)):
        yield


@contextmanager
def with_auth_version(auth_version: int) -> Iterator[None]:
    with _bind((_auth_version, auth_version)):
        yield


def get_greater_scope(old_scope: str, new_scope: str) -> str:
    """Return the wider of two data scopes; unknown scopes rank lowest."""
    if _SCOPE_PRIORITY.get(new_scope, 0) > _SCOPE_PRIORITY.get(old_scope, 0):
        return new_scope
    return old_scope