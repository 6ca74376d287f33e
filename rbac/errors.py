"""
rbac/errors.py -- Exception types raised by the access-control subsystem.

Uniqueness conflicts are NOT modelled here: the store lets
sqlalchemy.exc.IntegrityError propagate and callers treat it as
"already exists" (re-read the row). These types cover the item-level failures
that reconciliation logs and skips.

RECOVERABLE_ERRORS is the item-level taxonomy: an exception of one of these
types affects a single permission, role or binding and the run moves on.
Anything else (OperationalError on a lost connection, programming errors)
aborts the run.
"""

from __future__ import annotations

from sqlalchemy.exc import DataError, IntegrityError


class RBACError(Exception):
    """Base class for item-level access-control errors."""


class ScopeConflictError(RBACError):
    """A role exists under another scope and the policy forbids reusing it."""

    def __init__(self, name: str, requested: str, existing: list[str]) -> None:
        self.name = name
        self.requested = requested
        self.existing = existing
        super().__init__(
            f"Role {name!r} requested as {requested} but already exists as {', '.join(existing)}"
        )


RECOVERABLE_ERRORS: tuple[type[Exception], ...] = (RBACError, IntegrityError, DataError)
