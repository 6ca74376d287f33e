"""
jobs/seed_permissions.py -- Seed the default permission matrix and roles.

Creates every (resource, action) pair of the default catalog and the global
owner, manager, staff and user roles with their grants. Safe to re-run: a
second run reports everything as already existing and writes nothing.

Run with: python -m jobs.seed_permissions   (or the seed-permissions script)
"""

from __future__ import annotations

import sys

from core.config import Settings
from jobs._runner import run_job
from rbac.defaults import DEFAULT_STATE
from rbac.reconcile import ReconciliationEngine
from rbac.registry import ScopeConflictPolicy
from rbac.store import RBACStore


def seed(store: RBACStore, settings: Settings) -> list[str]:
    engine = ReconciliationEngine(store, ScopeConflictPolicy(settings.role_scope_policy))
    return engine.run(DEFAULT_STATE).summary_lines()


def main(argv: list[str] | None = None) -> int:
    return run_job("Permission seeding", __doc__.strip().splitlines()[0], seed, argv)


if __name__ == "__main__":
    sys.exit(main())
