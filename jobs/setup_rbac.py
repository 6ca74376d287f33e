"""
jobs/setup_rbac.py -- Full access-control setup: catalog, roles, administrator.

Runs the default reconciliation and then ensures the canonical administrator
(ADMIN_EMAIL) exists with is_admin set and no role. An existing administrator
keeps its password; ADMIN_PASSWORD is only used when the account is created.

Run with: python -m jobs.setup_rbac   (or the setup-rbac script)
"""

from __future__ import annotations

import sys

from core.config import Settings
from jobs._runner import run_job
from rbac.bootstrap import AdminBootstrap
from rbac.defaults import DEFAULT_STATE
from rbac.reconcile import ReconciliationEngine
from rbac.registry import ScopeConflictPolicy
from rbac.store import RBACStore


def setup(store: RBACStore, settings: Settings) -> list[str]:
    engine = ReconciliationEngine(store, ScopeConflictPolicy(settings.role_scope_policy))
    lines = engine.run(DEFAULT_STATE).summary_lines()

    if store.get_account_by_identity(settings.admin_email) is None and not settings.admin_password:
        raise ValueError(
            "ADMIN_PASSWORD is required to create the administrator. "
            "Set ADMIN_PASSWORD in your environment or .env file, or set DEBUG=true."
        )
    bootstrap = AdminBootstrap(store, rounds=settings.bcrypt_rounds)
    account, outcome = bootstrap.ensure_admin(
        settings.admin_email, settings.admin_password, username=settings.admin_username
    )
    lines.append(f"Administrator {account.identity}: {outcome}")
    if outcome == "created" and settings.admin_password_generated:
        lines.append(f"Generated administrator password (shown once): {settings.admin_password}")
    return lines


def main(argv: list[str] | None = None) -> int:
    return run_job("RBAC setup", __doc__.strip().splitlines()[0], setup, argv)


if __name__ == "__main__":
    sys.exit(main())
