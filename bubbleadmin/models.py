"""Persistent system entities and the hooks that fill them in before insertion."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar

from . import authctx
from .snowflake import IDGenerator


class _IdSource:
    """Holds the generator shared by all models."""

    def __init__(self) -> None:
        self.generator: IDGenerator | None = None


_id_source = _IdSource()


def set_id_generator(generator: IDGenerator | None) -> None:
    """Install the generator used for new primary keys (None disables it)."""
    _id_source.generator = generator


def next_id() -> int:
    """Next primary key, or 0 when no generator is installed."""
    generator = _id_source.generator
    if generator is None:
        return 0
    return generator.next_id()


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BaseModel:
    """Primary key, timestamps and soft-delete marker."""

    table_name: ClassVar[str] = ""

    id: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    def before_create(self) -> None:
        """Assign a generated id when none is set and stamp the creation times."""
        if self.id == 0:
            new_id = next_id()
            if new_id != 0:
                self.id = new_id
        if self.created_at is None:
            self.created_at = _now()
        if self.updated_at is None:
            self.updated_at = self.created_at


@dataclass
class BaseAuthModel(BaseModel):
    """A model owned by a tenant, a creator and a department."""

    tenant_id: int = 0
    created_by: int = 0
    dept_id: int = 0

    def before_create(self) -> None:
        """Also fill ownership from the request identity where not set explicitly."""
        super().before_create()
        if self.created_by == 0:
            self.created_by = authctx.get_user_id()
        if self.tenant_id == 0:
            self.tenant_id = authctx.get_tenant_id()
        if self.dept_id == 0:
            self.dept_id = authctx.get_dept_id()


@dataclass
class SysDept(BaseAuthModel):
    """Department."""

    table_name: ClassVar[str] = "sys_dept"

    parent_id: int = 0
    name: str = ""
    ancestors: str = ""
    sort: int = 0


@dataclass
class SysPackage(BaseAuthModel):
    """Tenant package."""

    table_name: ClassVar[str] = "sys_package"

    name: str = ""
    status: int = 1
    remark: str = ""


@dataclass
class SysPackagePermission:
    """Link between a package and a permission."""

    table_name: ClassVar[str] = "sys_package_permission"

    id: int = 0
    package_id: int = 0
    permission_id: int = 0
    created_at: datetime | None = None


@dataclass
class SysPermission(BaseAuthModel):
    """Permission, menu entry or API binding."""

    table_name: ClassVar[str] = "sys_permission"

    parent_id: int = 0
    name: str = ""
    code: str = ""
    type: str = ""
    api_path: str = ""
    api_method: str = "V"
    sort: int = 0


@dataclass
class SysRole(BaseAuthModel):
    """Role."""

    table_name: ClassVar[str] = "sys_role"

    name: str = ""
    code: str = ""


@dataclass
class SysRolePermission(BaseAuthModel):
    """Permission granted to a role, with its data scope."""

    table_name: ClassVar[str] = "sys_role_permission"

    role_id: int = 0
    permission_id: int = 0
    data_scope: str = "SELF"


@dataclass
class SysTenant(BaseModel):
    """Tenant."""

    table_name: ClassVar[str] = "sys_tenant"

    created_by: int = 0
    code: str = ""
    name: str = ""
    package_id: int = 0
    expire_time: datetime | None = None
    status: int = 1


@dataclass
class SysUser(BaseAuthModel):
    """User account."""

    table_name: ClassVar[str] = "sys_user"

    username: str = ""
    password_hash: str = ""
    name: str = ""
    mobile: str = ""
    avatar: str = ""
    status: int = 1
    login_failed_count: int = 0
    last_login_failed_at: datetime | None = None


@dataclass
class SysUserRole(BaseAuthModel):
    """Role held by a user."""

    table_name: ClassVar[str] = "sys_user_role"

    user_id: int = 0
    role_id: int = 0