"""
jobs/seed_sidebar_permissions.py -- Seed permissions for every sidebar tab.

Covers the main and secondary sidebar tabs, the people entities and the tasks
& maintenance entities, each crossed with view_list, view_one, create, edit
and delete. No roles are created; descriptions that drifted are refreshed.

Run with: python -m jobs.seed_sidebar_permissions
"""

from __future__ import annotations

import sys

from core.config import Settings
from jobs._runner import run_job
from rbac.defaults import SIDEBAR_STATE
from rbac.reconcile import ReconciliationEngine
from rbac.store import RBACStore


def seed(store: RBACStore, settings: Settings) -> list[str]:
    report = ReconciliationEngine(store).run(SIDEBAR_STATE)
    lines = report.summary_lines()
    lines.append(f"Total permissions in catalog: {store.counts()['permissions']}")
    lines.append("personal_information and change_password are available to every role without a grant")
    return lines


def main(argv: list[str] | None = None) -> int:
    return run_job("Sidebar permission seeding", __doc__.strip().splitlines()[0], seed, argv)


if __name__ == "__main__":
    sys.exit(main())
