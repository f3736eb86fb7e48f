"""Grouping of tenant package permissions and API permission codes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

API_TYPE = "API"


@dataclass(frozen=True)
class TenantPermRow:
    """One permission code reachable through a tenant's package."""

    tenant_id: int
    perm_code: str


@dataclass(frozen=True)
class ApiPermission:
    """A permission bound to an API operation path."""

    code: str
    api_path: str
    type: str = API_TYPE


def group_tenant_package_perms(rows: Iterable[TenantPermRow]) -> dict[int, list[str]]:
    """Group codes per tenant, dropping empty and duplicate codes."""
    grouped: dict[int, dict[str, None]] = {}
    for row in rows:
        if not row.perm_code:
            continue
        grouped.setdefault(row.tenant_id, {})[row.perm_code] = None
    return {tenant_id: list(codes) for tenant_id, codes in grouped.items()}


def group_api_permissions(permissions: Iterable[ApiPermission]) -> dict[str, list[str]]:
    """Map each API path to the codes of its API-type permissions."""
    result: dict[str, list[str]] = {}
    for permission in permissions:
        if permission.type != API_TYPE:
            continue
        result.setdefault(permission.api_path, []).append(permission.code)
    return result