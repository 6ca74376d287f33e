"""
rbac/store.py -- SQLAlchemy Core persistence layer for access-control entities.

Pattern: Repository + Data Mapper. RBACStore is the repository (one clean
interface per entity); the _row_to_* functions are the mappers. Catalog,
registry, bindings, bootstrap and decider code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness invariants live in the schema, not only in code:
  permissions       UNIQUE(resource, action)
  roles             UNIQUE(name, scope_key)
  role_permissions  UNIQUE(role_id, permission_id)
  accounts          UNIQUE(identity)

  roles.scope_key is "global" or "account:<id>" and is never NULL. SQLite (and
  PostgreSQL before 15) treat two NULLs as distinct inside a UNIQUE constraint,
  so UNIQUE(name, account_id) would let two global roles of the same name in.
  account_id is kept alongside for readability and joins.

  Every create_* method lets sqlalchemy.exc.IntegrityError propagate. Callers
  treat it as "a concurrent writer already created the row" and re-read.

  accounts carries CHECK (NOT (is_admin = 1 AND role_id IS NOT NULL)): admin
  status is a bypass, never a role.

Connection scope: one RBACStore per batch run. It owns the engine (and its
pool) and must be closed on every exit path -- use it as a context manager.

Layer rule: no imports from jobs/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Engine

from rbac.models import GLOBAL, Account, Permission, Role, RolePermissionBinding, Scope

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'rbac.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_permissions = Table(
    "permissions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("resource", String(100), nullable=False),
    Column("action", String(100), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
    UniqueConstraint("resource", "action", name="uq_permission_resource_action"),
)

_roles = Table(
    "roles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("scope_key", String(40), nullable=False, server_default="global"),
    Column("account_id", Integer),  # NULL = global; no FK, scopes may precede the account
    Column("description", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
    UniqueConstraint("name", "scope_key", name="uq_role_name_scope"),
)

_role_permissions = Table(
    "role_permissions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("role_id", Integer, ForeignKey("roles.id"), nullable=False),
    Column("permission_id", Integer, ForeignKey("permissions.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
)

_accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("identity", String(255), nullable=False, unique=True),
    Column("username", String(255), nullable=False, server_default=""),
    Column("password_hash", Text),
    Column("is_admin", Integer, nullable=False, server_default="0"),
    Column("role_id", Integer, ForeignKey("roles.id")),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
    CheckConstraint("NOT (is_admin = 1 AND role_id IS NOT NULL)", name="ck_admin_has_no_role"),
)


# ---------------------------------------------------------------------------
# SQLite pragmas
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign key enforcement on every new SQLite connection.

    Both are per-connection settings; SQLite does not persist foreign_keys and
    pooled connections do not inherit PRAGMAs.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class RBACStore:
    """Repository for permissions, roles, bindings and accounts.

    Usage:
        with RBACStore("sqlite:///rbac.db") as store:
            perm = store.create_permission("tenants", "create", "Permission to create tenants")
            role = store.create_role(Role(name="manager"))
            store.create_binding(role.id, perm.id)
    """

    # Columns update_account() accepts. Anything else raises ValueError.
    _ACCOUNT_FIELDS: set = {"username", "is_admin", "role_id", "password_hash"}

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        metadata.create_all(self.engine)

    def __enter__(self) -> RBACStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def get_permission(self, resource: str, action: str) -> Permission | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                _permissions.select().where(
                    (_permissions.c.resource == resource) & (_permissions.c.action == action)
                )
            ).fetchone()
        return _row_to_permission(row) if row is not None else None

    def list_permissions(self) -> list[Permission]:
        """Return the whole catalog ordered by (resource, action)."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _permissions.select().order_by(_permissions.c.resource, _permissions.c.action)
            ).fetchall()
        return [_row_to_permission(r) for r in rows]

    def create_permission(self, resource: str, action: str, description: str = "") -> Permission:
        """Insert one permission and return it with its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if (resource, action) already exists.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _permissions.insert().values(
                    resource=resource,
                    action=action,
                    description=description,
                    created_at=now,
                )
            )
            conn.commit()
        return Permission(
            resource=resource,
            action=action,
            description=description,
            id=result.inserted_primary_key[0],
            created_at=now,
        )

    def create_permissions(self, permissions: list[Permission]) -> int:
        """Insert many permissions in one transaction. Returns the number inserted.

        All-or-nothing: a single duplicate rolls the whole batch back and
        raises IntegrityError.
        """
        if not permissions:
            return 0
        now = _now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                _permissions.insert(),
                [
                    {"resource": p.resource, "action": p.action, "description": p.description, "created_at": now}
                    for p in permissions
                ],
            )
        return len(permissions)

    def update_permission_description(self, permission_id: int, description: str) -> bool:
        """Description is the only mutable permission field. Returns True if a row changed."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _permissions.update()
                .where(_permissions.c.id == permission_id)
                .values(description=description, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def get_role(self, name: str, scope: Scope = GLOBAL) -> Role | None:
        """Look up a role by its identity (name, scope)."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _roles.select().where((_roles.c.name == name) & (_roles.c.scope_key == scope.key))
            ).fetchone()
        return _row_to_role(row) if row is not None else None

    def get_role_by_id(self, role_id: int) -> Role | None:
        with self.engine.connect() as conn:
            row = conn.execute(_roles.select().where(_roles.c.id == role_id)).fetchone()
        return _row_to_role(row) if row is not None else None

    def list_roles(self, name: str | None = None) -> list[Role]:
        """Return roles ordered by ID (oldest first), optionally only those named `name`."""
        query = _roles.select().order_by(_roles.c.id)
        if name is not None:
            query = query.where(_roles.c.name == name)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_role(r) for r in rows]

    def create_role(self, role: Role) -> Role:
        """Insert a role and return a copy carrying its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if (name, scope) already exists.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _roles.insert().values(
                    name=role.name,
                    scope_key=role.scope.key,
                    account_id=role.scope.account_id,
                    description=role.description,
                    created_at=now,
                )
            )
            conn.commit()
        return Role(
            name=role.name,
            scope=role.scope,
            description=role.description,
            id=result.inserted_primary_key[0],
            created_at=now,
        )

    def update_role(self, role_id: int, *, scope: Scope | None = None, description: str | None = None) -> bool:
        """Move a role to another scope and/or replace its description.

        Raises IntegrityError if the target (name, scope) is already taken.
        Returns True if a row was updated.
        """
        values: dict = {"updated_at": _now_iso()}
        if scope is not None:
            values["scope_key"] = scope.key
            values["account_id"] = scope.account_id
        if description is not None:
            values["description"] = description
        with self.engine.connect() as conn:
            result = conn.execute(_roles.update().where(_roles.c.id == role_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Role-permission bindings
    # ------------------------------------------------------------------

    def get_binding(self, role_id: int, permission_id: int) -> RolePermissionBinding | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                _role_permissions.select().where(
                    (_role_permissions.c.role_id == role_id) & (_role_permissions.c.permission_id == permission_id)
                )
            ).fetchone()
        return _row_to_binding(row) if row is not None else None

    def list_bound_permission_ids(self, role_id: int) -> set[int]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(_role_permissions.c.permission_id).where(_role_permissions.c.role_id == role_id)
            ).fetchall()
        return {r.permission_id for r in rows}

    def create_binding(self, role_id: int, permission_id: int) -> RolePermissionBinding:
        """Grant one permission to one role.

        Raises IntegrityError if the pair already exists, or if either side
        does not exist (foreign keys).
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _role_permissions.insert().values(role_id=role_id, permission_id=permission_id, created_at=now)
            )
            conn.commit()
        return RolePermissionBinding(
            role_id=role_id,
            permission_id=permission_id,
            id=result.inserted_primary_key[0],
            created_at=now,
        )

    def create_bindings(self, role_id: int, permission_ids: list[int]) -> int:
        """Grant many permissions to one role in one transaction (all-or-nothing)."""
        if not permission_ids:
            return 0
        now = _now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                _role_permissions.insert(),
                [{"role_id": role_id, "permission_id": pid, "created_at": now} for pid in permission_ids],
            )
        return len(permission_ids)

    def role_grants(self, role_id: int, resource: str, action: str) -> bool:
        """Return True if role_id is bound to Permission(resource, action). One query."""
        query = (
            select(func.count())
            .select_from(
                _role_permissions.join(_permissions, _permissions.c.id == _role_permissions.c.permission_id)
            )
            .where(
                (_role_permissions.c.role_id == role_id)
                & (_permissions.c.resource == resource)
                & (_permissions.c.action == action)
            )
        )
        with self.engine.connect() as conn:
            count = conn.execute(query).scalar()
        return (count or 0) > 0

    def list_role_permissions(self, role_id: int) -> list[Permission]:
        query = (
            select(_permissions)
            .select_from(
                _permissions.join(_role_permissions, _permissions.c.id == _role_permissions.c.permission_id)
            )
            .where(_role_permissions.c.role_id == role_id)
            .order_by(_permissions.c.resource, _permissions.c.action)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_permission(r) for r in rows]

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> int:
        """Insert an account and return its assigned database ID.

        Raises ValueError for an admin that also carries a role (the CHECK
        constraint would reject it anyway) and IntegrityError if the identity
        already exists.
        """
        if account.is_admin and account.role_id is not None:
            raise ValueError("An admin account cannot be assigned a role.")
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    identity=account.identity,
                    username=account.username,
                    password_hash=account.password_hash,
                    is_admin=1 if account.is_admin else 0,
                    role_id=account.role_id,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_account(self, account_id: int) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_account_by_identity(self, identity: str) -> Account | None:
        """Look up an account by exact identity (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.identity == identity)).fetchone()
        return _row_to_account(row) if row is not None else None

    def update_account(self, account_id: int, **fields) -> bool:
        """Update mutable fields on an existing account.

        Accepted fields: username, is_admin, role_id, password_hash. is_admin
        must be passed as bool; this method converts it to int. Unknown keys
        raise ValueError rather than being silently ignored.

        Returns True if a row was updated, False if account_id was not found.
        """
        unknown = set(fields) - self._ACCOUNT_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {unknown!r}")
        if "is_admin" in fields:
            fields["is_admin"] = 1 if fields["is_admin"] else 0
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def counts(self) -> dict[str, int]:
        """Row count per table. Used by run summaries and idempotence checks."""
        tables = {
            "permissions": _permissions,
            "roles": _roles,
            "role_permissions": _role_permissions,
            "accounts": _accounts,
        }
        with self.engine.connect() as conn:
            return {name: conn.execute(select(func.count()).select_from(t)).scalar() or 0 for name, t in tables.items()}

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_permission(row) -> Permission:
    return Permission(
        id=row.id,
        resource=row.resource,
        action=row.action,
        description=row.description or "",
        created_at=row.created_at,
    )


def _row_to_role(row) -> Role:
    return Role(
        id=row.id,
        name=row.name,
        scope=Scope.from_key(row.scope_key),
        description=row.description or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_binding(row) -> RolePermissionBinding:
    return RolePermissionBinding(
        id=row.id,
        role_id=row.role_id,
        permission_id=row.permission_id,
        created_at=row.created_at,
    )


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        identity=row.identity,
        username=row.username or "",
        password_hash=row.password_hash,
        is_admin=bool(row.is_admin),
        role_id=row.role_id,
        created_at=row.created_at,
    )
