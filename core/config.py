"""
core/config.py -- Settings for the access-control jobs.

Every knob the batch jobs read (database URL, administrator identity and
password, bcrypt cost, role scope policy, log level) is a field on Settings.
The rbac package never reads these itself: jobs/ pull them from
get_settings() and pass plain values into the components.

get_settings() is cached, so a process builds Settings once. Tests that change
environment variables call get_settings.cache_clear() around the change.

ROLE_SCOPE_POLICY is lowercased and checked against the three policies that
rbac.registry.ScopeConflictPolicy knows about.

ADMIN_PASSWORD: with DEBUG=true a missing value is replaced by a random one
and admin_password_generated is set, so setup-rbac can print it once. Without
DEBUG there is no fallback; setup-rbac refuses to create the administrator
without one, and the seed-only jobs never look at it.

Layer rule: core/ is the kernel. This module may not import from rbac/ or jobs/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("rbac.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'rbac.db'}"

_SCOPE_POLICIES = ("distinct", "migrate", "fail")


class Settings(BaseSettings):
    """Environment (and .env) values for one job run.

    Every field has a default, so an empty environment yields a working
    SQLite setup; only creating the administrator needs more.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Administrator bootstrap
    # ------------------------------------------------------------------

    admin_email: str = "admin@example.com"
    admin_username: str = "admin"
    # "" means unset.
    admin_password: str = ""
    # Set by the validator when admin_password was generated (debug only).
    admin_password_generated: bool = False
    # bcrypt cost factor. 12 is the library default; tests drop to 4.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    # What RoleRegistry.ensure() does when a role of the requested name only
    # exists under another scope: "distinct" | "migrate" | "fail".
    role_scope_policy: str = "distinct"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("role_scope_policy")
    @classmethod
    def validate_role_scope_policy(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in _SCOPE_POLICIES:
            raise ValueError(f"ROLE_SCOPE_POLICY must be one of {', '.join(_SCOPE_POLICIES)}.")
        return value

    @model_validator(mode="after")
    def validate_admin_password(self) -> "Settings":
        """Fill in a random ADMIN_PASSWORD in debug mode; leave it empty otherwise."""
        if not self.admin_password and self.debug:
            self.admin_password = secrets.token_urlsafe(18)
            self.admin_password_generated = True
            logger.warning("ADMIN_PASSWORD not set; generated a one-off password for the debug administrator")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call."""
    return Settings()
