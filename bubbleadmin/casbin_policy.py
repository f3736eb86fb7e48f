"""Domain-scoped RBAC with data scopes, and the per-request authorization check."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from . import authctx, errors

ACTION = "V"
ADMIN_ROLE = "admin"
ADMIN_DOMAIN = "1"
MAX_HIERARCHY_LEVEL = 10


@dataclass(frozen=True)
class UserRoleRow:
    """A user's role within a tenant."""

    user_id: Any
    role_code: Any
    tenant_id: Any


@dataclass(frozen=True)
class RolePermRow:
    """A permission granted to a role within a tenant, with its data scope."""

    role_code: Any
    tenant_id: Any
    perm_code: Any
    data_scope: Any


class Enforcer:
    """Thread-safe enforcer.

    A request (sub, dom, obj, act) is allowed when the subject holds the
    ``admin`` role in domain ``1``, or holds a role in ``dom`` that has a policy
    for the same domain, object and action.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._groupings: list[tuple[str, str, str]] = []
        self._policies: list[tuple[str, str, str, str, str]] = []

    def add_grouping(self, user: Any, role: Any, domain: Any) -> None:
        rule = (str(user), str(role), str(domain))
        with self._lock:
            if rule not in self._groupings:
                self._groupings.append(rule)

    def add_policy(self, role: Any, domain: Any, obj: Any, act: Any, scope: Any) -> None:
        rule = (str(role), str(domain), str(obj), str(act), str(scope))
        with self._lock:
            if rule not in self._policies:
                self._policies.append(rule)

    def load_policy(
        self, user_roles: Iterable[UserRoleRow], role_perms: Iterable[RolePermRow]
    ) -> None:
        """Replace all rules with the given user-role and role-permission rows."""
        with self._lock:
            self._groupings.clear()
            self._policies.clear()
            for ur in user_roles:
                self.add_grouping(ur.user_id, ur.role_code, ur.tenant_id)
            for rp in role_perms:
                self.add_policy(rp.role_code, rp.tenant_id, rp.perm_code, ACTION, rp.data_scope)

    def _has_link(self, name: str, role: str, domain: str) -> bool:
        if name == role:
            return True
        seen = {name}
        frontier = deque([(name, 0)])
        while frontier:
            current, depth = frontier.popleft()
            if depth >= MAX_HIERARCHY_LEVEL:
                continue
            for user, parent, dom in self._groupings:
                if user != current or dom != domain or parent in seen:
                    continue
                if parent == role:
                    return True
                seen.add(parent)
                frontier.append((parent, depth + 1))
        return False

    def enforce_ex(self, sub: Any, dom: Any, obj: Any, act: Any) -> tuple[bool, list[str]]:
        """Return whether the request is allowed and the policy that allowed it."""
        sub, dom, obj, act = str(sub), str(dom), str(obj), str(act)
        with self._lock:
            is_admin = self._has_link(sub, ADMIN_ROLE, ADMIN_DOMAIN)
            for policy in self._policies:
                p_sub, p_dom, p_obj, p_act, _ = policy
                if is_admin or (
                    self._has_link(sub, p_sub, dom)
                    and dom == p_dom
                    and obj == p_obj
                    and act == p_act
                ):
                    return True, list(policy)
            if not self._policies and is_admin:
                return True, []
            return False, []


def authorize(
    enforcer: Enforcer, perm_codes: Sequence[str], user_id: Any, tenant_id: Any
) -> str:
    """Return the data scope granted by the first permission code the user holds.

    Raises a forbidden ServiceError when none of the codes is granted.
    """
    for code in perm_codes:
        ok, policy = enforcer.enforce_ex(user_id, tenant_id, code, ACTION)
        if ok:
            scope = policy[4] if len(policy) > 4 else ""
            return authctx.get_greater_scope("", scope)
    raise errors.forbidden("CASBIN", "forbidden")