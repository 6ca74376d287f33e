"""Unit tests for core/config.py -- Settings validation.

Covers:
- debug mode generates ADMIN_PASSWORD when it is missing
- production mode leaves it empty (the setup job refuses to create an admin)
- an explicit ADMIN_PASSWORD is kept as-is
- ROLE_SCOPE_POLICY is normalised and validated
- BCRYPT_ROUNDS bounds
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DEBUG", "ADMIN_PASSWORD", "ROLE_SCOPE_POLICY", "BCRYPT_ROUNDS"):
        monkeypatch.delenv(name, raising=False)


def test_debug_generates_admin_password() -> None:
    settings = Settings(debug=True)
    assert len(settings.admin_password) >= 16
    assert settings.admin_password_generated is True


def test_production_has_no_default_password() -> None:
    settings = Settings(debug=False)
    assert settings.admin_password == ""
    assert settings.admin_password_generated is False


def test_explicit_password_kept() -> None:
    settings = Settings(debug=True, admin_password="chosen")
    assert settings.admin_password == "chosen"
    assert settings.admin_password_generated is False


def test_scope_policy_normalised() -> None:
    assert Settings(debug=True, role_scope_policy=" Migrate ").role_scope_policy == "migrate"


def test_scope_policy_rejects_unknown() -> None:
    with pytest.raises(ValidationError):
        Settings(debug=True, role_scope_policy="rename")


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_bounds(rounds: int) -> None:
    with pytest.raises(ValidationError):
        Settings(debug=True, bcrypt_rounds=rounds)


def test_defaults() -> None:
    settings = Settings(debug=True)
    assert settings.admin_email == "admin@example.com"
    assert settings.bcrypt_rounds == 12
    assert settings.role_scope_policy == "distinct"
    assert settings.database_url.startswith("sqlite:///")
