"""bcrypt helpers for hashing and verifying account passwords."""

from __future__ import annotations

from functools import lru_cache

import bcrypt

# Mirrors accounts.domain.validation.PASSWORD_MAX_BYTES; bcrypt refuses longer input.
_MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int) -> str:
    """Hash ``password`` with a freshly generated salt.

    The salt and cost factor are embedded in the returned modular-crypt
    string (``$2b$<rounds>$<salt><digest>``), so no separate salt column is
    needed.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Compare ``password`` against a stored hash in constant time."""
    encoded = password.encode("utf-8")
    if len(encoded) > _MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


@lru_cache(maxsize=4)
def dummy_hash(rounds: int) -> str:
    """Return a fixed hash used to spend verification time on unknown emails."""
    return hash_password("account-service-dummy-password", rounds)
