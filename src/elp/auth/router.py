"""Authentication router: all /api/v1/auth/* endpoints.

``AuthError`` raised by the service layer is rendered by the global error
handler as ``{"detail": message, "code": kind}`` with the kind's status.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.auth.jwt import create_access_token, create_refresh_token, verify_token
from elp.auth.schemas import (
    ConfirmEmailRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    SessionResponse,
    SignupRequest,
    SignupResponse,
    TokenResponse,
    UserResponse,
)
from elp.auth.service import (
    authenticate,
    confirm_email,
    get_refresh_token,
    get_user_by_id,
    hash_token,
    refresh_token_usable,
    revoke_all_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
    signup,
    store_refresh_token,
)
from elp.config import get_settings
from elp.database import get_session
from elp.db.models import User
from elp.notifications.push import publish_event, user_channel
from elp.redis_client import get_redis_optional

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


async def _publish_auth_state(redis: Redis | None, user_id: int, state: str) -> None:
    await publish_event(redis, user_channel(user_id), {"event": "auth_state", "data": {"state": state}})


async def _issue_tokens(db: AsyncSession, user: User, request: Request) -> TokenResponse:
    """Create access + refresh tokens, store the refresh token hash and commit."""
    settings = get_settings()
    token_id = str(uuid.uuid4())
    access_token = create_access_token(user.id, user.email)
    refresh_token = create_refresh_token(user.id, user.email, token_id=token_id)

    await store_refresh_token(
        db,
        user_id=user.id,
        token_id=token_id,
        token_hash=hash_token(refresh_token),
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup_endpoint(
    body: SignupRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_redis_optional),
) -> SignupResponse:
    """Create an account and sign in. Awards the signup bonus and First Login."""
    user, raw_token = await signup(db, redis, body.email, body.password, body.full_name)
    tokens = await _issue_tokens(db, user, request)
    await _publish_auth_state(redis, user.id, "signed_in")

    settings = get_settings()
    return SignupResponse(
        **tokens.model_dump(),
        confirmation_token=raw_token if settings.environment != "production" else None,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_redis_optional),
) -> TokenResponse:
    """Login with email + password."""
    user = await authenticate(db, redis, body.email, body.password)
    tokens = await _issue_tokens(db, user, request)
    await _publish_auth_state(redis, user.id, "signed_in")
    logger.info("user_logged_in", user_id=user.id)
    return tokens


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Rotate refresh token. Reusing a revoked token revokes every session of the user."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    jti = payload.get("jti")
    if not jti:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    old_token = await get_refresh_token(db, jti)
    if old_token is None or not refresh_token_usable(old_token, body.refresh_token):
        raise HTTPException(status_code=401, detail="Refresh token not found")
    if old_token.is_revoked:
        logger.warning("refresh_token_reuse", user_id=old_token.user_id, jti=jti)
        await revoke_all_tokens(db, old_token.user_id)
        await db.commit()
        raise HTTPException(status_code=401, detail="Refresh token has been revoked")

    user = await get_user_by_id(db, old_token.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")

    settings = get_settings()
    new_token_id = str(uuid.uuid4())
    new_access = create_access_token(user.id, user.email)
    new_refresh = create_refresh_token(user.id, user.email, token_id=new_token_id)

    await rotate_refresh_token(
        db,
        old_token=old_token,
        new_token_id=new_token_id,
        new_token_hash=hash_token(new_refresh),
        new_expires_at=datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()

    return TokenResponse(
        access_token=new_access,
        refresh_token=new_refresh,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout")
async def logout(
    body: LogoutRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_redis_optional),
) -> dict[str, str]:
    """Revoke a refresh token. Always succeeds."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError:
        logger.info("logout_with_invalid_token")
    else:
        jti = payload.get("jti")
        if jti and await revoke_refresh_token(db, jti):
            await db.commit()
            await _publish_auth_state(redis, int(payload["sub"]), "signed_out")

    return {"status": "logged_out"}


@router.post("/confirm-email")
async def confirm_email_endpoint(
    body: ConfirmEmailRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    await confirm_email(db, body.token)
    await db.commit()
    return {"status": "email_confirmed"}


@router.get("/session", response_model=SessionResponse)
async def session(user: User = Depends(get_current_user)) -> SessionResponse:
    """Current session: the authenticated user behind the access token."""
    return SessionResponse(user=UserResponse.model_validate(user))
