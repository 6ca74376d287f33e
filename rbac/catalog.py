"""
rbac/catalog.py -- The permission catalog: canonical (resource, action) pairs.

The desired catalog for one group is the cartesian product of its resources
and actions, each pair carrying a generated description:

    build_catalog(["owners"], ["view_list"])
    -> [Permission("owners", "view_list", "Permission to view list owners")]

materialize() brings the store to a desired catalog as a declarative diff:
one read of what exists, one batched insert of what is missing. When the batch
collides with a concurrent writer (IntegrityError on the unique constraint) it
falls back to ensure() per entry, which treats the conflict as "already exists".

Permissions are never deleted here. Description is the only field that changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError

from rbac.errors import RECOVERABLE_ERRORS
from rbac.models import CatalogResult, Permission, PermissionRef
from rbac.store import RBACStore

logger = logging.getLogger("rbac.catalog")


def _words(slug: str) -> str:
    return slug.replace("_", " ").strip()


def describe(resource: str, action: str) -> str:
    """Human-readable description for a pair: underscores become spaces."""
    return f"Permission to {_words(action)} {_words(resource)}"


def build_catalog(resources: Iterable[str], actions: Iterable[str]) -> list[Permission]:
    """Return resources x actions as unsaved Permissions, duplicates dropped, order kept."""
    actions = list(actions)
    seen: set[PermissionRef] = set()
    entries: list[Permission] = []
    for resource in resources:
        for action in actions:
            ref = PermissionRef(resource, action)
            if ref in seen:
                continue
            seen.add(ref)
            entries.append(Permission(resource=resource, action=action, description=describe(resource, action)))
    return entries


class PermissionCatalog:
    def __init__(self, store: RBACStore) -> None:
        self.store = store

    def lookup(self, resource: str, action: str) -> Permission | None:
        return self.store.get_permission(resource, action)

    def index(self) -> dict[PermissionRef, Permission]:
        """The whole catalog keyed by (resource, action), in one read."""
        return {p.ref: p for p in self.store.list_permissions()}

    def ensure(self, resource: str, action: str, description: str | None = None) -> tuple[Permission, str]:
        """Return the permission for (resource, action), creating it if needed.

        Outcome is "created", "existing" or "updated" (the supplied description
        differed from the stored one and replaced it). At most one write.
        """
        existing = self.store.get_permission(resource, action)
        if existing is None:
            try:
                created = self.store.create_permission(
                    resource, action, description if description is not None else describe(resource, action)
                )
                logger.debug("Created permission %s.%s", resource, action)
                return created, "created"
            except IntegrityError:
                # A concurrent run created it between our read and our insert.
                existing = self.store.get_permission(resource, action)
                if existing is None:
                    raise
        if description is not None and existing.description != description:
            self.store.update_permission_description(existing.id, description)
            existing.description = description
            logger.debug("Updated description of permission %s.%s", resource, action)
            return existing, "updated"
        return existing, "existing"

    def materialize(self, entries: Iterable[Permission]) -> CatalogResult:
        """Make every entry exist, creating only the missing ones."""
        result = CatalogResult()
        current = self.index()
        missing: list[Permission] = []
        queued: set[PermissionRef] = set()

        for entry in entries:
            if entry.ref in queued:
                continue
            queued.add(entry.ref)
            found = current.get(entry.ref)
            if found is None:
                missing.append(entry)
                continue
            result.existing += 1
            if entry.description and found.description != entry.description:
                try:
                    self.store.update_permission_description(found.id, entry.description)
                    result.updated += 1
                except RECOVERABLE_ERRORS as e:
                    logger.error("Error updating permission %s: %s", entry.ref, e)
                    result.failures.append(f"permission {entry.ref}: {e}")

        if not missing:
            return result

        try:
            result.created += self.store.create_permissions(missing)
            for entry in missing:
                logger.debug("Created permission %s", entry.ref)
        except IntegrityError:
            logger.info("Permission batch conflicted with a concurrent writer; retrying one at a time")
            for entry in missing:
                try:
                    _, outcome = self.ensure(entry.resource, entry.action, entry.description)
                except RECOVERABLE_ERRORS as e:
                    logger.error("Error processing permission %s: %s", entry.ref, e)
                    result.failures.append(f"permission {entry.ref}: {e}")
                    continue
                if outcome == "created":
                    result.created += 1
                else:
                    result.existing += 1
                    if outcome == "updated":
                        result.updated += 1
        return result
