"""Reusable query scopes: tenant isolation, data permission, paging and sorting."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Tuple

from . import authctx

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

Condition = Tuple[str, Tuple[Any, ...]]


@dataclass(frozen=True)
class Query:
    """An immutable description of a filtered, ordered and paged select."""

    table: str = ""
    conditions: tuple[Condition, ...] = ()
    offset: int | None = None
    limit: int | None = None
    order: tuple[str, ...] = ()
    include_deleted: bool = False

    def where(self, clause: str, *args: Any) -> Query:
        return replace(self, conditions=self.conditions + ((clause, args),))

    def order_by(self, clause: str) -> Query:
        return replace(self, order=self.order + (clause,))

    def page(self, offset: int, limit: int) -> Query:
        return replace(self, offset=offset, limit=limit)

    def with_deleted(self) -> Query:
        return replace(self, include_deleted=True)

    def apply(self, *args: Callable[[Query], Query]) -> Query:
        """Apply scopes in order."""
        query = self
        for scope in args:
            query = scope(query)
        return query


Scope = Callable[[Query], Query]


def data_scope() -> Scope:
    """Restrict rows to the current tenant and the caller's data scope."""
    info = authctx.get_context_info()

    def scope(query: Query) -> Query:
        query = query.where("tenant_id = ?", info.tenant_id)
        if info.data_scope == "ALL":
            return query
        if info.data_scope == "DEPT_SUB":
            return query.where(
                "dept_id IN (SELECT id FROM sys_dept WHERE id = ? OR ancestors LIKE ?)",
                info.dept_id,
                f"%,{info.dept_id},%",
            )
        if info.data_scope == "DEPT":
            return query.where("dept_id = ?", info.dept_id)
        if info.data_scope == "SELF":
            return query.where("created_by = ?", info.user_id)
        return query.where("1 = 0")

    return scope


def tenant_scope() -> Scope:
    """Restrict rows to the current tenant."""
    tenant_id = authctx.get_tenant_id()

    def scope(query: Query) -> Query:
        return query.where("tenant_id = ?", tenant_id)

    return scope


def paginate(page: int, page_size: int) -> Scope:
    """Page the query; page size is clamped to 1..100 with 10 as the default."""
    if page <= 0:
        page = 1
    if page_size > MAX_PAGE_SIZE:
        page_size = MAX_PAGE_SIZE
    elif page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    offset = (page - 1) * page_size

    def scope(query: Query) -> Query:
        return query.page(offset, page_size)

    return scope


def only_trashed(query: Query) -> Query:
    """Only soft-deleted rows."""
    return query.with_deleted().where("deleted_at IS NOT NULL")


def sort_by(field: str, ascending: bool) -> Scope:
    direction = "ASC" if ascending else "DESC"

    def scope(query: Query) -> Query:
        return query.order_by(f"{field} {direction}")

    return scope


def is_on_sale(query: Query) -> Query:
    """Available products with stock left."""
    return query.where("status = ?", 1).where("stock > ?", 0)