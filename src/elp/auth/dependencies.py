"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.errors import AuthError, AuthErrorKind
from elp.auth.jwt import verify_token
from elp.auth.service import get_user_by_id
from elp.database import get_session
from elp.db.models import User

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the bearer access token to its User.

    A missing, malformed, expired or refresh token, or one whose user no
    longer exists, is an ``INVALID_TOKEN`` auth error (401).
    """
    if credentials is None:
        raise AuthError(AuthErrorKind.INVALID_TOKEN, "Not authenticated")
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise AuthError(AuthErrorKind.INVALID_TOKEN) from e

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise AuthError(AuthErrorKind.INVALID_TOKEN, "User no longer exists")
    return user
