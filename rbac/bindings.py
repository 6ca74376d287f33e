"""
rbac/bindings.py -- Which permissions each role grants.

Bindings are additive. Nothing in this module removes a binding: dropping a
permission from a role's desired list leaves the existing grant in place, and
revocation is an operator decision made outside reconciliation.

A desired permission that is not in the catalog is a dangling reference. It is
skipped with a warning and reported; it never creates a half-formed grant.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError

from rbac.catalog import PermissionCatalog
from rbac.errors import RECOVERABLE_ERRORS
from rbac.models import BindingResult, Permission, PermissionRef, Role
from rbac.store import RBACStore

logger = logging.getLogger("rbac.bindings")


class RoleBindings:
    def __init__(self, store: RBACStore, catalog: PermissionCatalog | None = None) -> None:
        self.store = store
        self.catalog = catalog or PermissionCatalog(store)

    def bind(self, role: Role, permission: Permission) -> bool:
        """Grant permission to role. Returns True if a binding was created."""
        if self.store.get_binding(role.id, permission.id) is not None:
            return False
        try:
            self.store.create_binding(role.id, permission.id)
        except IntegrityError:
            if self.store.get_binding(role.id, permission.id) is None:
                raise
            return False
        logger.debug("Granted %s to role %r", permission.ref, role.name)
        return True

    def reconcile_role(self, role: Role, desired: Iterable[PermissionRef | tuple[str, str]]) -> BindingResult:
        """Make role grant every desired permission that exists in the catalog."""
        result = BindingResult()
        index = self.catalog.index()
        bound = self.store.list_bound_permission_ids(role.id)

        missing: list[Permission] = []
        for item in desired:
            ref = PermissionRef(*item)
            permission = index.get(ref)
            if permission is None:
                logger.warning("Permission %s not found, skipping for role %r", ref, role.name)
                result.dangling.append(ref)
                continue
            if permission.id in bound:
                result.existing += 1
                continue
            bound.add(permission.id)
            missing.append(permission)

        if not missing:
            return result

        try:
            result.created += self.store.create_bindings(role.id, [p.id for p in missing])
            for permission in missing:
                logger.debug("Granted %s to role %r", permission.ref, role.name)
        except IntegrityError:
            logger.info("Binding batch for role %r conflicted; retrying one at a time", role.name)
            for permission in missing:
                try:
                    if self.bind(role, permission):
                        result.created += 1
                    else:
                        result.existing += 1
                except RECOVERABLE_ERRORS as e:
                    logger.error("Error granting %s to role %r: %s", permission.ref, role.name, e)
                    result.failures.append(f"binding {role.name} -> {permission.ref}: {e}")
        return result
