# skintrack/core/security.py
from __future__ import annotations

import secrets
from functools import lru_cache

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unknown or malformed hash: treat as a mismatch.
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """
    A real argon2 hash of a random secret, computed once per process.

    Login verifies against it when no user matches the email so that a miss
    costs the same as a wrong password.
    """
    return hash_password(secrets.token_urlsafe(32))
