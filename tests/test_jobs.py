"""Tests for jobs/ -- the batch entrypoints, run in-process against a temp SQLite file.

Covers:
- seed-permissions: exit 0, summary printed, idempotent on re-run
- seed-sidebar-permissions: exit 0, no roles created
- setup-rbac: creates the administrator once, keeps its password on re-run
- setup-rbac in production without ADMIN_PASSWORD: exit 1, nothing half-created
- unreachable database: exit 1 with the error on stderr
- an unrecoverable error inside the run: exit 1 and the store is still closed
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from core.config import get_settings
from jobs import seed_permissions, seed_sidebar_permissions, setup_rbac
from rbac.passwords import verify_password
from rbac.reconcile import ReconciliationEngine
from rbac.store import RBACStore


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    url = f"sqlite:///{tmp_path / 'rbac.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("ADMIN_PASSWORD", "job-test-pass")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


def test_seed_permissions(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert seed_permissions.main([]) == 0
    out = capsys.readouterr().out
    assert "Permissions [resources]: 25 created, 0 already existed" in out
    assert "completed successfully" in out

    assert seed_permissions.main([]) == 0
    out = capsys.readouterr().out
    assert "Permissions [resources]: 0 created, 25 already existed" in out
    assert "Roles: 0 created, 4 already existed" in out


def test_seed_sidebar_permissions(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert seed_sidebar_permissions.main([]) == 0
    out = capsys.readouterr().out
    assert "Permissions [sidebar tabs]: 175 created" in out

    with RBACStore(db_url) as store:
        assert store.counts()["roles"] == 0
        assert store.get_permission("work_orders", "edit") is not None


def test_setup_rbac_creates_admin_once(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert setup_rbac.main([]) == 0
    assert "Administrator admin@example.com: created" in capsys.readouterr().out

    assert setup_rbac.main([]) == 0
    assert "Administrator admin@example.com: unchanged" in capsys.readouterr().out

    with RBACStore(db_url) as store:
        admin = store.get_account_by_identity("admin@example.com")
        assert admin.is_admin is True
        assert admin.role_id is None
        assert verify_password("job-test-pass", admin.password_hash)
        assert store.counts()["accounts"] == 1


def test_setup_rbac_requires_password_in_production(
    db_url: str, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("ADMIN_PASSWORD", "")
    get_settings.cache_clear()

    assert setup_rbac.main([]) == 1
    assert "ADMIN_PASSWORD is required" in capsys.readouterr().err

    with RBACStore(db_url) as store:
        assert store.get_account_by_identity("admin@example.com") is None


def test_unreachable_database_exits_1(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'missing' / 'dir' / 'rbac.db'}")
    monkeypatch.setenv("DEBUG", "true")
    get_settings.cache_clear()
    try:
        assert seed_permissions.main([]) == 1
    finally:
        get_settings.cache_clear()
    assert "Permission seeding failed" in capsys.readouterr().err


def test_store_released_when_run_aborts(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    real_close = RBACStore.close
    lost = OperationalError("INSERT", {}, Exception("disk I/O error"))

    with patch.object(ReconciliationEngine, "run", side_effect=lost):
        with patch.object(RBACStore, "close", autospec=True, side_effect=real_close) as close:
            assert seed_permissions.main([]) == 1

    assert close.call_count == 1
    assert "disk I/O error" in capsys.readouterr().err
