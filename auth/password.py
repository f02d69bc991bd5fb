"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic salting and a
configurable work factor.

bcrypt only reads the first 72 bytes of a password.  Two passwords that
share a 72-byte prefix would hash alike, and recent bcrypt releases raise
``ValueError`` instead of truncating, which would surface as a 500 at
registration.  ``MAX_PASSWORD_BYTES`` lets the user repository reject
such passwords as invalid input before hashing.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt (auto-salted)."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash.

    Returns ``False`` instead of raising for malformed hashes or
    over-long passwords.
    """
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except (ValueError, TypeError):
        return False
