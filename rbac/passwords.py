"""
rbac/passwords.py -- One-way password hashing for bootstrapped accounts.

bcrypt is used directly (no passlib wrapper): passlib's internal wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

The cost factor is an explicit argument so the bootstrap can take it from
settings (BCRYPT_ROUNDS) and tests can drop it to the minimum of 4. The salt
is generated per call and embedded in the hash, so the stored value is all
verify_password() needs.

Layer rule: no imports from jobs/ or core/.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only uses the first 72 bytes (recent releases raise ValueError
    beyond that). The bootstrap password comes from configuration, well below
    that limit.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed or non-bcrypt hash
        return False


def hash_rounds(hashed: str) -> int:
    """Return the cost factor recorded in a bcrypt hash ("$2b$<rounds>$...")."""
    return int(hashed.split("$")[2])
