"""
security helpers:
- Argon2 password hashing via argon2-cffi (random salt per hash)
- Opaque random tokens for password reset and email verification
"""
from __future__ import annotations

import secrets
from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from api.errors import InvalidArgument

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2. Empty passwords are rejected."""
    if not password:
        raise InvalidArgument("Password is required")
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a plaintext password against an Argon2 digest.
    argon2 compares in constant time; malformed digests verify as False.
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return ph.hash(secrets.token_hex(16))


def burn_verification(password: str) -> None:
    """Spend the same work as a real check when there is no user to check against."""
    verify_password(password or "", _dummy_hash())


def generate_reset_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def generate_verification_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)
