"""
HS256 JWT token management.

Access tokens are short-lived; refresh tokens carry a ``jti`` that is
tracked server-side for rotation and revocation.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from elp.config import get_settings


def _encode(payload: dict[str, Any]) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, email: str) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    return _encode({
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "iss": settings.jwt_issuer,
        "type": "access",
    })


def create_refresh_token(user_id: int, email: str, *, token_id: str) -> str:
    """
    Create a long-lived refresh token.

    Args:
        user_id: The user's database ID.
        email: The user's email, informational only.
        token_id: Unique token identifier (JTI) for revocation tracking.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    return _encode({
        "sub": str(user_id),
        "email": email,
        "jti": token_id,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_refresh_token_expire_days),
        "iss": settings.jwt_issuer,
        "type": "refresh",
    })


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
