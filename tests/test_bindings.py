"""Unit tests for rbac/bindings.py -- RoleBindings.

Covers:
- bind() is idempotent
- reconcile_role() creates only missing bindings, in one batch
- a reference missing from the catalog is skipped with a warning
- bindings are additive: removing a permission from the desired list revokes nothing
- batch conflict falls back to per-pair bind()
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from rbac.bindings import RoleBindings
from rbac.models import PermissionRef, Role
from rbac.store import RBACStore


@pytest.fixture
def role(store: RBACStore) -> Role:
    for resource, action in [("tenants", "view_list"), ("tenants", "create"), ("owners", "view_one")]:
        store.create_permission(resource, action)
    return store.create_role(Role(name="manager"))


def test_bind_is_idempotent(store: RBACStore, role: Role) -> None:
    bindings = RoleBindings(store)
    perm = store.get_permission("tenants", "create")
    assert bindings.bind(role, perm) is True
    assert bindings.bind(role, perm) is False
    assert store.counts()["role_permissions"] == 1


def test_reconcile_role_creates_missing_only(store: RBACStore, role: Role) -> None:
    bindings = RoleBindings(store)
    bindings.bind(role, store.get_permission("tenants", "view_list"))

    result = bindings.reconcile_role(role, [("tenants", "view_list"), ("tenants", "create")])
    assert result.created == 1
    assert result.existing == 1
    assert store.role_grants(role.id, "tenants", "create")


def test_dangling_reference_skipped_with_warning(
    store: RBACStore, role: Role, caplog: pytest.LogCaptureFixture
) -> None:
    bindings = RoleBindings(store)
    with caplog.at_level(logging.WARNING, logger="rbac.bindings"):
        result = bindings.reconcile_role(role, [("tenants", "create"), ("ghosts", "haunt")])

    assert result.created == 1
    assert result.dangling == [PermissionRef("ghosts", "haunt")]
    assert "ghosts.haunt" in caplog.text
    assert store.counts()["role_permissions"] == 1


def test_bindings_are_additive(store: RBACStore, role: Role) -> None:
    bindings = RoleBindings(store)
    bindings.reconcile_role(role, [("tenants", "create"), ("owners", "view_one")])

    result = bindings.reconcile_role(role, [("tenants", "create")])
    assert result.created == 0
    assert store.role_grants(role.id, "owners", "view_one")
    assert store.counts()["role_permissions"] == 2


def test_duplicate_desired_refs_bound_once(store: RBACStore, role: Role) -> None:
    result = RoleBindings(store).reconcile_role(role, [("tenants", "create"), ("tenants", "create")])
    assert result.created == 1
    assert result.existing == 1


def test_batch_conflict_falls_back_per_pair(store: RBACStore, role: Role) -> None:
    bindings = RoleBindings(store)
    created_first = store.get_permission("owners", "view_one")

    def racing_batch(role_id, permission_ids):
        store.create_binding(role_id, created_first.id)
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    with patch.object(store, "create_bindings", side_effect=racing_batch):
        result = bindings.reconcile_role(role, [("owners", "view_one"), ("tenants", "create")])

    assert result.created == 1
    assert result.existing == 1
    assert result.failures == []
    assert store.counts()["role_permissions"] == 2
