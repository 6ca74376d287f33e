"""
rbac/reconcile.py -- Bring a store to a DesiredState, idempotently.

A run is two passes over the desired state:

  1. materialize every catalog group (resources x actions)
  2. for each role definition: ensure the role, then reconcile its bindings

Running the same DesiredState twice performs no creating writes the second
time (report.writes == 0).

Failure model:
  Item-level errors (RECOVERABLE_ERRORS: scope conflicts, residual integrity
  or data errors) are logged with the item name, recorded in report.failures
  and the run continues with the next item.
  Anything else (lost connectivity, a broken schema) propagates out of run().
  The caller owns the RBACStore and releases it on the way out.

Layer rule: no imports from jobs/ or core/.
"""

from __future__ import annotations

import logging

from rbac.bindings import RoleBindings
from rbac.catalog import PermissionCatalog, build_catalog
from rbac.errors import RECOVERABLE_ERRORS
from rbac.models import DesiredState, ReconcileReport, RoleDefinition
from rbac.registry import RoleRegistry, ScopeConflictPolicy
from rbac.store import RBACStore

logger = logging.getLogger("rbac.reconcile")


class ReconciliationEngine:
    """Usage:
    with RBACStore(url) as store:
        report = ReconciliationEngine(store).run(DEFAULT_STATE)
    """

    def __init__(self, store: RBACStore, policy: ScopeConflictPolicy = ScopeConflictPolicy.DISTINCT) -> None:
        self.store = store
        self.catalog = PermissionCatalog(store)
        self.registry = RoleRegistry(store, policy)
        self.bindings = RoleBindings(store, self.catalog)

    def run(self, desired: DesiredState) -> ReconcileReport:
        report = ReconcileReport(roles_requested=len(desired.roles))

        for group in desired.catalog:
            entries = build_catalog(group.resources, group.actions)
            logger.info("Materializing %d permissions for %s", len(entries), group.name)
            result = self.catalog.materialize(entries)
            report.catalog[group.name] = result
            report.failures.extend(result.failures)

        for definition in desired.roles:
            self._reconcile_role(definition, report)

        for line in report.summary_lines():
            logger.info(line)
        return report

    def _reconcile_role(self, definition: RoleDefinition, report: ReconcileReport) -> None:
        try:
            role, outcome = self.registry.ensure(definition.name, definition.scope, definition.description)
        except RECOVERABLE_ERRORS as e:
            logger.error("Error processing role %r: %s", definition.name, e)
            report.failures.append(f"role {definition.name}: {e}")
            return

        if outcome == "created":
            report.roles_created += 1
        elif outcome == "migrated":
            report.roles_migrated += 1
        else:
            report.roles_existing += 1
            if outcome == "updated":
                report.roles_updated += 1

        try:
            result = self.bindings.reconcile_role(role, definition.permissions)
        except RECOVERABLE_ERRORS as e:
            logger.error("Error binding permissions for role %r: %s", definition.name, e)
            report.failures.append(f"bindings {definition.name}: {e}")
            return

        report.bindings_created += result.created
        report.bindings_existing += result.existing
        report.dangling.extend(f"{definition.name} -> {ref}" for ref in result.dangling)
        report.failures.extend(result.failures)
