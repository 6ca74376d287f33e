"""
tests/test_dependencies.py -- Integration tests for the FastAPI authorization dependencies.

A minimal host app stands in for the real one: an HTTP middleware plays the
authentication layer (looks up X-Account and puts the Account on
request.state.account) and the lifespan wires the store into app.state.

Coverage:
  - 401 when nothing authenticated the request
  - 403 with {"code": "forbidden"} when the decider says DENY
  - 200 when the role grants the permission, and always for the admin
  - require_any_permission / require_all_permissions

Design: named shared-memory SQLite URI, because TestClient runs sync
dependencies in a worker thread and plain :memory: is per-connection.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import asynccontextmanager

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from rbac.bootstrap import AdminBootstrap
from rbac.defaults import DEFAULT_STATE
from rbac.dependencies import (
    get_current_account,
    require_all_permissions,
    require_any_permission,
    require_permission,
)
from rbac.models import Account
from rbac.reconcile import ReconciliationEngine
from rbac.store import RBACStore


def _build_app(store: RBACStore) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.rbac_store = store
        yield

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def authenticate(request: Request, call_next):
        identity = request.headers.get("X-Account")
        request.state.account = store.get_account_by_identity(identity) if identity else None
        return await call_next(request)

    @app.get("/me")
    def me(account: Account = Depends(get_current_account)):
        return {"identity": account.identity}

    @app.get("/tenants")
    def list_tenants(account: Account = Depends(require_permission("tenants", "view_list"))):
        return {"ok": True}

    @app.delete("/tenants/1")
    def delete_tenant(account: Account = Depends(require_permission("tenants", "delete"))):
        return {"ok": True}

    @app.get("/directory")
    def directory(
        account: Account = Depends(require_any_permission(("tenants", "delete"), ("owners", "view_list")))
    ):
        return {"ok": True}

    @app.post("/tenants")
    def create_tenant(
        account: Account = Depends(require_all_permissions(("tenants", "view_list"), ("tenants", "create")))
    ):
        return {"ok": True}

    return app


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    store = RBACStore("sqlite:///file:test_rbac_deps?mode=memory&cache=shared&uri=true")
    ReconciliationEngine(store).run(DEFAULT_STATE)
    AdminBootstrap(store, rounds=4).ensure_admin("admin@example.com", "s3cret-pass")
    for identity, role_name in [("staff@example.com", "staff"), ("manager@example.com", "manager")]:
        store.create_account(Account(identity=identity, role_id=store.get_role(role_name).id))

    with TestClient(_build_app(store), raise_server_exceptions=True) as c:
        yield c

    store.close()


def _as(identity: str) -> dict[str, str]:
    return {"X-Account": identity}


class TestAuthentication:
    def test_missing_account_is_401(self, client: TestClient) -> None:
        resp = client.get("/tenants")
        assert resp.status_code == 401
        assert resp.json()["detail"]["code"] == "unauthorized"

    def test_current_account(self, client: TestClient) -> None:
        resp = client.get("/me", headers=_as("staff@example.com"))
        assert resp.status_code == 200
        assert resp.json() == {"identity": "staff@example.com"}


class TestRequirePermission:
    def test_granted(self, client: TestClient) -> None:
        assert client.get("/tenants", headers=_as("staff@example.com")).status_code == 200

    def test_denied(self, client: TestClient) -> None:
        resp = client.delete("/tenants/1", headers=_as("staff@example.com"))
        assert resp.status_code == 403
        assert resp.json()["detail"]["code"] == "forbidden"
        assert "tenants.delete" in resp.json()["detail"]["message"]

    def test_admin_bypass(self, client: TestClient) -> None:
        assert client.delete("/tenants/1", headers=_as("admin@example.com")).status_code == 200


class TestAnyAll:
    def test_any_allows_with_one_grant(self, client: TestClient) -> None:
        assert client.get("/directory", headers=_as("staff@example.com")).status_code == 200

    def test_all_requires_every_grant(self, client: TestClient) -> None:
        assert client.post("/tenants", headers=_as("manager@example.com")).status_code == 200
        assert client.post("/tenants", headers=_as("staff@example.com")).status_code == 403
