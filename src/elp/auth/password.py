"""
Password hashing and validation using argon2id.
"""

from __future__ import annotations

import argon2

from elp.auth.errors import AuthError, AuthErrorKind
from elp.config import get_settings

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Returns True if the password matches. Never raises on mismatch."""
    try:
        return _hasher.verify(password_hash, password)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False


def check_needs_rehash(password_hash: str) -> bool:
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """
    Raise ``AuthError(WEAK_PASSWORD)`` unless the password is usable.

    Requirements:
    - not empty or whitespace-only
    - at least ``password_min_length`` characters (6 by default)
    - at most ``password_max_length`` characters
    """
    settings = get_settings()
    if not password or not password.strip():
        raise AuthError(AuthErrorKind.WEAK_PASSWORD, "Password cannot be empty")
    if len(password) < settings.password_min_length:
        raise AuthError(
            AuthErrorKind.WEAK_PASSWORD,
            f"Password must be at least {settings.password_min_length} characters",
        )
    if len(password) > settings.password_max_length:
        raise AuthError(
            AuthErrorKind.WEAK_PASSWORD,
            f"Password must not exceed {settings.password_max_length} characters",
        )
