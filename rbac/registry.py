"""
rbac/registry.py -- Roles identified by (name, scope).

A role is either global (visible to every account) or scoped to one account.
ensure() is the only way reconciliation creates roles. What happens when the
requested name already exists under a *different* scope is decided by an
explicit ScopeConflictPolicy rather than silently:

  distinct  create a second row; (name, scope) is the identity, so a global
            "manager" and an account-scoped "manager" coexist (default)
  migrate   move the oldest row of that name to the requested scope in place
  fail      raise ScopeConflictError; the caller logs and skips the role

Layer rule: no imports from jobs/ or core/.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.exc import IntegrityError

from rbac.errors import ScopeConflictError
from rbac.models import GLOBAL, Role, Scope
from rbac.store import RBACStore

logger = logging.getLogger("rbac.registry")


class ScopeConflictPolicy(str, Enum):
    DISTINCT = "distinct"
    MIGRATE = "migrate"
    FAIL = "fail"


class RoleRegistry:
    def __init__(self, store: RBACStore, policy: ScopeConflictPolicy = ScopeConflictPolicy.DISTINCT) -> None:
        self.store = store
        self.policy = ScopeConflictPolicy(policy)

    def ensure(self, name: str, scope: Scope = GLOBAL, description: str | None = None) -> tuple[Role, str]:
        """Return the role (name, scope), creating it if needed.

        Outcome is one of "created", "existing", "updated" (description
        refreshed) or "migrated" (an other-scope row was moved here).

        Raises ScopeConflictError under the FAIL policy.
        """
        role = self.store.get_role(name, scope)
        if role is not None:
            return self._refresh(role, description)

        others = [r for r in self.store.list_roles(name=name) if r.scope != scope]
        if others:
            if self.policy is ScopeConflictPolicy.FAIL:
                raise ScopeConflictError(name, str(scope), [str(r.scope) for r in others])
            if self.policy is ScopeConflictPolicy.MIGRATE:
                return self._migrate(others[0], scope, description)

        try:
            created = self.store.create_role(Role(name=name, scope=scope, description=description or ""))
        except IntegrityError:
            # Lost a create race to another run; the winner's row is ours too.
            role = self.store.get_role(name, scope)
            if role is None:
                raise
            return self._refresh(role, description)
        logger.debug("Created role %r (%s)", name, scope)
        return created, "created"

    def _refresh(self, role: Role, description: str | None) -> tuple[Role, str]:
        if description is None or role.description == description:
            return role, "existing"
        self.store.update_role(role.id, description=description)
        role.description = description
        logger.debug("Updated description of role %r (%s)", role.name, role.scope)
        return role, "updated"

    def _migrate(self, role: Role, scope: Scope, description: str | None) -> tuple[Role, str]:
        previous = role.scope
        try:
            self.store.update_role(role.id, scope=scope, description=description)
        except IntegrityError:
            # Another run created (name, scope) after our lookup; use its row.
            found = self.store.get_role(role.name, scope)
            if found is None:
                raise
            return self._refresh(found, description)
        role.scope = scope
        if description is not None:
            role.description = description
        logger.info("Moved role %r from %s to %s", role.name, previous, scope)
        return role, "migrated"
