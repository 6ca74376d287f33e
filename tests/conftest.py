"""
tests/conftest.py -- Shared fixtures for the access-control tests.

This module provides:
  - store: an empty in-memory RBACStore, closed after the test
  - seeded_store: an RBACStore already reconciled to DEFAULT_STATE
  - make_account(): inserts an Account with a given role name

Plain sqlite:///:memory: is fine here because these tests call the store from
one thread. tests/test_dependencies.py builds its own named shared-memory
store because TestClient runs dependencies in a thread pool.

DEBUG and BCRYPT_ROUNDS must be set before core.config is imported anywhere so
get_settings() generates a dev ADMIN_PASSWORD and hashes stay cheap.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator

# Set before any core/ import; see module docstring.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest

from rbac.defaults import DEFAULT_STATE
from rbac.models import GLOBAL, Account, Scope
from rbac.reconcile import ReconciliationEngine
from rbac.store import RBACStore


@pytest.fixture
def store() -> Generator[RBACStore, None, None]:
    s = RBACStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def seeded_store(store: RBACStore) -> RBACStore:
    """Store reconciled to the default catalog and the owner/manager/staff/user roles."""
    ReconciliationEngine(store).run(DEFAULT_STATE)
    return store


@pytest.fixture
def make_account(store: RBACStore) -> Callable[..., Account]:
    """Return a factory that inserts an account assigned to the named role."""

    def _make(identity: str, role_name: str | None = None, scope: Scope = GLOBAL, is_admin: bool = False) -> Account:
        role_id = None
        if role_name is not None:
            role = store.get_role(role_name, scope)
            assert role is not None, f"role {role_name!r} ({scope}) missing from fixture store"
            role_id = role.id
        account_id = store.create_account(Account(identity=identity, is_admin=is_admin, role_id=role_id))
        return store.get_account(account_id)

    return _make
