"""
rbac/models.py -- Domain dataclasses for the access-control subsystem.

Pattern: Data class (pure data containers, no store access). The store maps
rows into these; catalog/registry/bindings/decider do the work.

Two families live here:
  - persisted entities: Permission, Role, RolePermissionBinding, Account
  - desired-state configuration: PermissionRef, CatalogGroup, RoleDefinition,
    DesiredState (what reconciliation should bring the store to)

Layer rule: no imports from jobs/ or third-party libraries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Scope:
    """Where a role is visible: every account (GLOBAL) or one account.

    key is the persisted, never-NULL form used in the (name, scope_key)
    unique constraint: "global" or "account:<id>".
    """

    account_id: int | None = None

    @classmethod
    def for_account(cls, account_id: int) -> Scope:
        return cls(account_id=account_id)

    @classmethod
    def from_key(cls, key: str) -> Scope:
        if key == "global":
            return GLOBAL
        prefix, _, raw_id = key.partition(":")
        if prefix != "account" or not raw_id.isdigit():
            raise ValueError(f"Unrecognised scope key: {key!r}")
        return cls(account_id=int(raw_id))

    @property
    def is_global(self) -> bool:
        return self.account_id is None

    @property
    def key(self) -> str:
        return "global" if self.account_id is None else f"account:{self.account_id}"

    def __str__(self) -> str:
        return "global" if self.account_id is None else f"account #{self.account_id}"


GLOBAL = Scope()


# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------


@dataclass
class Permission:
    """An atomic (resource, action) capability.

    Only description is mutable once the row exists.
    """

    resource: str
    action: str
    description: str = ""
    id: int | None = None
    created_at: str | None = None

    @property
    def ref(self) -> PermissionRef:
        return PermissionRef(self.resource, self.action)


@dataclass
class Role:
    """A named bundle of permissions, global or scoped to one account."""

    name: str
    scope: Scope = GLOBAL
    description: str = ""
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class RolePermissionBinding:
    role_id: int
    permission_id: int
    id: int | None = None
    created_at: str | None = None


@dataclass
class Account:
    """An identity the decider is asked about.

    identity is the stable, configuration-known key (an email address for the
    canonical administrator). is_admin is a total bypass: an admin account never
    carries a role_id, and the store rejects rows that try.

    password_hash is a bcrypt hash, never the cleartext.
    """

    identity: str
    username: str = ""
    is_admin: bool = False
    role_id: int | None = None
    password_hash: str | None = None
    id: int | None = None
    created_at: str | None = None


# ---------------------------------------------------------------------------
# Desired state (reconciliation input)
# ---------------------------------------------------------------------------


class PermissionRef(NamedTuple):
    resource: str
    action: str

    def __str__(self) -> str:
        return f"{self.resource}.{self.action}"


@dataclass(frozen=True)
class CatalogGroup:
    """A named block of the catalog: every resource crossed with every action."""

    name: str
    resources: tuple[str, ...]
    actions: tuple[str, ...]


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    description: str
    permissions: tuple[PermissionRef, ...] = ()
    scope: Scope = GLOBAL


@dataclass(frozen=True)
class DesiredState:
    """Everything one reconciliation run should make true."""

    catalog: tuple[CatalogGroup, ...] = ()
    roles: tuple[RoleDefinition, ...] = ()


# ---------------------------------------------------------------------------
# Run reports
# ---------------------------------------------------------------------------


@dataclass
class CatalogResult:
    created: int = 0
    existing: int = 0
    updated: int = 0  # description refreshed on an existing row
    failures: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.existing


@dataclass
class BindingResult:
    created: int = 0
    existing: int = 0
    dangling: list[PermissionRef] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


@dataclass
class ReconcileReport:
    """Counts for one ReconciliationEngine.run().

    failures holds one human-readable line per skipped item. A non-empty list
    does not make the run fail; it is surfaced through the log and the summary.
    """

    catalog: dict[str, CatalogResult] = field(default_factory=dict)
    roles_requested: int = 0
    roles_created: int = 0
    roles_existing: int = 0
    roles_migrated: int = 0
    roles_updated: int = 0
    bindings_created: int = 0
    bindings_existing: int = 0
    dangling: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def permissions_created(self) -> int:
        return sum(r.created for r in self.catalog.values())

    @property
    def permissions_existing(self) -> int:
        return sum(r.existing for r in self.catalog.values())

    @property
    def permissions_updated(self) -> int:
        return sum(r.updated for r in self.catalog.values())

    @property
    def writes(self) -> int:
        """Number of creating writes the run performed."""
        return self.permissions_created + self.roles_created + self.bindings_created

    def summary_lines(self) -> list[str]:
        lines = []
        for name, result in self.catalog.items():
            lines.append(
                f"Permissions [{name}]: {result.created} created, {result.existing} already existed"
                + (f", {result.updated} descriptions updated" if result.updated else "")
            )
        if self.roles_requested:
            lines.append(
                f"Roles: {self.roles_created} created, {self.roles_existing} already existed"
                + (f", {self.roles_migrated} migrated" if self.roles_migrated else "")
            )
            lines.append(f"Bindings: {self.bindings_created} created, {self.bindings_existing} already existed")
        if self.dangling:
            lines.append(f"Skipped {len(self.dangling)} binding(s) to unknown permissions: {', '.join(self.dangling)}")
        if self.failures:
            lines.append(f"{len(self.failures)} item(s) failed (see log)")
        return lines
