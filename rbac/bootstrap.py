"""
rbac/bootstrap.py -- Ensure the canonical administrator account exists.

Administrator status is the is_admin bypass, not a role: the admin account
carries no role_id and the decider allows it everything. There is no "admin"
role in the catalog.

ensure_admin() is idempotent:
  absent                -> create with is_admin=True, role_id=None, bcrypt hash
  present, not admin    -> promote (is_admin=True, role_id cleared) in one update
  present, admin        -> nothing

An existing password hash is never rewritten, so re-running the bootstrap
after the administrator changed their password does not reset it.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from rbac.models import Account
from rbac.passwords import DEFAULT_ROUNDS, hash_password
from rbac.store import RBACStore

logger = logging.getLogger("rbac.bootstrap")


class AdminBootstrap:
    def __init__(self, store: RBACStore, rounds: int = DEFAULT_ROUNDS) -> None:
        self.store = store
        self.rounds = rounds

    def ensure_admin(self, identity: str, initial_password: str, username: str = "") -> tuple[Account, str]:
        """Return the admin account and one of "created", "promoted", "unchanged"."""
        if not identity:
            raise ValueError("Administrator identity must not be empty.")

        account = self.store.get_account_by_identity(identity)
        if account is None:
            if not initial_password:
                raise ValueError("An initial password is required to create the administrator.")
            candidate = Account(
                identity=identity,
                username=username or identity.split("@", 1)[0],
                is_admin=True,
                role_id=None,
                password_hash=hash_password(initial_password, self.rounds),
            )
            try:
                candidate.id = self.store.create_account(candidate)
            except IntegrityError:
                # Another bootstrap created the row first; fall through and promote it if needed.
                account = self.store.get_account_by_identity(identity)
                if account is None:
                    raise
            else:
                logger.info("Created administrator account %s", identity)
                return self.store.get_account(candidate.id) or candidate, "created"

        if account.is_admin and account.role_id is None:
            logger.debug("Administrator account %s already present", identity)
            return account, "unchanged"

        self.store.update_account(account.id, is_admin=True, role_id=None)
        account.is_admin = True
        account.role_id = None
        logger.info("Promoted existing account %s to administrator", identity)
        return account, "promoted"
