"""
rbac/decider.py -- Answer "may this account perform action on resource?".

Decision order:
  1. is_admin accounts are allowed everything.
  2. The effective role is the role named like the account's assigned role and
     scoped to this account, falling back to the global role of that name. A
     role scoped to some other account is never effective.
  3. ALLOW iff a binding links the effective role to Permission(resource, action).

No role, a dangling role_id, or an unknown permission are all a plain DENY,
never an error. The decider only reads, so one instance is safe to share
between concurrent requests.
"""

from __future__ import annotations

from collections.abc import Iterable

from rbac.models import GLOBAL, Account, Decision, Permission, Role, Scope
from rbac.store import RBACStore


class AuthorizationDecider:
    def __init__(self, store: RBACStore) -> None:
        self.store = store

    def effective_role(self, account: Account) -> Role | None:
        if account.role_id is None:
            return None
        assigned = self.store.get_role_by_id(account.role_id)
        if assigned is None:
            return None
        if account.id is not None:
            scoped = self.store.get_role(assigned.name, Scope.for_account(account.id))
            if scoped is not None:
                return scoped
        return self.store.get_role(assigned.name, GLOBAL)

    def decide(self, account: Account, resource: str, action: str) -> Decision:
        if account.is_admin:
            return Decision.ALLOW
        role = self.effective_role(account)
        if role is None:
            return Decision.DENY
        return Decision.ALLOW if self.store.role_grants(role.id, resource, action) else Decision.DENY

    def decide_any(self, account: Account, pairs: Iterable[tuple[str, str]]) -> Decision:
        """ALLOW if at least one (resource, action) pair is allowed."""
        if account.is_admin:
            return Decision.ALLOW
        granted = self._granted(account)
        if granted is None:
            return Decision.DENY
        return Decision.ALLOW if any(tuple(p) in granted for p in pairs) else Decision.DENY

    def decide_all(self, account: Account, pairs: Iterable[tuple[str, str]]) -> Decision:
        """ALLOW only if every (resource, action) pair is allowed.

        An account without a role is denied before the pairs are looked at,
        and an empty pair set is denied for every non-admin account.
        """
        if account.is_admin:
            return Decision.ALLOW
        pairs = [tuple(p) for p in pairs]
        granted = self._granted(account)
        if granted is None or not pairs:
            return Decision.DENY
        return Decision.ALLOW if all(p in granted for p in pairs) else Decision.DENY

    def effective_permissions(self, account: Account) -> list[Permission]:
        """Every permission the account holds; the whole catalog for an admin."""
        if account.is_admin:
            return self.store.list_permissions()
        role = self.effective_role(account)
        if role is None:
            return []
        return self.store.list_role_permissions(role.id)

    def _granted(self, account: Account) -> set[tuple[str, str]] | None:
        """Pairs the account's effective role grants, or None without a role."""
        role = self.effective_role(account)
        if role is None:
            return None
        return {(p.resource, p.action) for p in self.store.list_role_permissions(role.id)}


def decide(store: RBACStore, account: Account, resource: str, action: str) -> Decision:
    """Module-level shortcut for one-off checks."""
    return AuthorizationDecider(store).decide(account, resource, action)
