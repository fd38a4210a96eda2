"""
Authentication business logic.

Handles signup, login with account lockout, refresh token rotation and
email confirmation. Every failure surfaces as ``AuthError`` with a kind.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from elp.auth.errors import AuthError, AuthErrorKind
from elp.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from elp.config import get_settings
from elp.db.models import EmailConfirmationToken, RefreshToken, User
from elp.gamification.evaluator import AchievementEvaluator
from elp.gamification.points_service import grant_points
from elp.gamification.rewards import SIGNUP_POINTS

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def normalize_email(email: str) -> str:
    """Validate the address syntax and return it lowercased."""
    try:
        info = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise AuthError(AuthErrorKind.INVALID_EMAIL, str(e)) from e
    return info.normalized.lower()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------


async def signup(
    db: AsyncSession,
    redis: Redis | None,
    email: str,
    password: str,
    full_name: str | None = None,
) -> tuple[User, str]:
    """
    Create an account, its points wallet and the First Login achievement.

    Returns:
        Tuple of (user, raw email confirmation token).

    Raises:
        AuthError: INVALID_EMAIL, WEAK_PASSWORD or EMAIL_TAKEN.
    """
    email = normalize_email(email)
    validate_password_strength(password)

    if await get_user_by_email(db, email) is not None:
        raise AuthError(AuthErrorKind.EMAIL_TAKEN)

    now = datetime.now(timezone.utc)
    user = User(
        email=email,
        full_name=full_name.strip() if full_name else None,
        password_hash=hash_password(password),
        email_confirmed=False,
        created_at=now,
        last_login=now,
        login_count=1,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Concurrent signup with the same email won the unique index
        await db.rollback()
        raise AuthError(AuthErrorKind.EMAIL_TAKEN) from e

    await grant_points(
        db,
        redis,
        user.id,
        SIGNUP_POINTS,
        source="signup",
        description="Welcome bonus",
        idempotency_key=f"signup:{user.id}",
    )
    await AchievementEvaluator(db, redis).on_signup(user.id)

    raw_token = await create_confirmation_token(db, user.id)
    logger.info("user_created", user_id=user.id, email=email)
    return user, raw_token


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate(
    db: AsyncSession,
    redis: Redis | None,
    email: str,
    password: str,
) -> User:
    """
    Authenticate a user with email + password.

    Raises:
        AuthError: INVALID_EMAIL, INVALID_CREDENTIALS, RATE_LIMITED or
            EMAIL_NOT_CONFIRMED.
    """
    settings = get_settings()
    email = normalize_email(email)
    user = await get_user_by_email(db, email)
    if user is None:
        raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

    if await check_account_lockout(redis, user.id):
        logger.warning("login_locked_out", user_id=user.id)
        raise AuthError(AuthErrorKind.RATE_LIMITED)

    if not verify_password(password, user.password_hash):
        await increment_failed_login(redis, user.id)
        raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

    if settings.require_email_confirmation and not user.email_confirmed:
        raise AuthError(AuthErrorKind.EMAIL_NOT_CONFIRMED)

    await clear_failed_login(redis, user.id)

    user.last_login = datetime.now(timezone.utc)
    user.login_count = (user.login_count or 0) + 1
    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Account lockout (skipped when Redis is unavailable)
# ---------------------------------------------------------------------------


def _attempts_key(user_id: int) -> str:
    return f"login_attempts:{user_id}"


async def check_account_lockout(redis: Redis | None, user_id: int) -> bool:
    if redis is None:
        return False
    count_str = await redis.get(_attempts_key(user_id))
    if count_str is None:
        return False
    return int(count_str) >= get_settings().login_lockout_threshold


async def increment_failed_login(redis: Redis | None, user_id: int) -> int:
    """Increment failed login counter. Returns the new count."""
    if redis is None:
        return 0
    key = _attempts_key(user_id)
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, get_settings().login_lockout_duration_minutes * 60)
    return int(count)


async def clear_failed_login(redis: Redis | None, user_id: int) -> None:
    if redis is not None:
        await redis.delete(_attempts_key(user_id))


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


async def store_refresh_token(
    db: AsyncSession,
    user_id: int,
    token_id: str,
    token_hash: str,
    expires_at: datetime,
    user_agent: str | None = None,
) -> RefreshToken:
    token = RefreshToken(
        id=token_id,
        user_id=user_id,
        token_hash=token_hash,
        issued_at=datetime.now(timezone.utc),
        expires_at=expires_at,
        user_agent=user_agent,
    )
    db.add(token)
    await db.flush()
    return token


async def get_refresh_token(db: AsyncSession, token_id: str) -> RefreshToken | None:
    result = await db.execute(select(RefreshToken).where(RefreshToken.id == token_id))
    return result.scalar_one_or_none()


def refresh_token_usable(token: RefreshToken, raw_token: str) -> bool:
    """Hash matches and the token is not past its expiry."""
    if not secrets.compare_digest(token.token_hash, hash_token(raw_token)):
        return False
    return _as_utc(token.expires_at) > datetime.now(timezone.utc)


async def rotate_refresh_token(
    db: AsyncSession,
    old_token: RefreshToken,
    new_token_id: str,
    new_token_hash: str,
    new_expires_at: datetime,
    user_agent: str | None = None,
) -> RefreshToken:
    """Revoke old token and create a new one (rotation)."""
    old_token.is_revoked = True
    old_token.revoked_at = datetime.now(timezone.utc)
    old_token.replaced_by = new_token_id

    return await store_refresh_token(
        db,
        user_id=old_token.user_id,
        token_id=new_token_id,
        token_hash=new_token_hash,
        expires_at=new_expires_at,
        user_agent=user_agent,
    )


async def revoke_refresh_token(db: AsyncSession, token_id: str) -> bool:
    """Revoke a specific refresh token. Returns True if found."""
    token = await get_refresh_token(db, token_id)
    if token is None:
        return False
    token.is_revoked = True
    token.revoked_at = datetime.now(timezone.utc)
    await db.flush()
    return True


async def revoke_all_tokens(db: AsyncSession, user_id: int) -> int:
    """Revoke all refresh tokens for a user. Returns count revoked."""
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
    )
    await db.flush()
    return result.rowcount


# ---------------------------------------------------------------------------
# Email confirmation tokens
# ---------------------------------------------------------------------------


async def create_confirmation_token(db: AsyncSession, user_id: int) -> str:
    """
    Create an email confirmation token.

    Returns the raw token; only its sha256 hash is stored. Earlier unused
    tokens for the user are invalidated.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    raw_token = secrets.token_urlsafe(48)

    await db.execute(
        update(EmailConfirmationToken)
        .where(EmailConfirmationToken.user_id == user_id, EmailConfirmationToken.used_at.is_(None))
        .values(used_at=now)
    )
    db.add(EmailConfirmationToken(
        user_id=user_id,
        token_hash=hash_token(raw_token),
        created_at=now,
        expires_at=now + timedelta(hours=settings.email_confirmation_token_ttl_hours),
    ))
    await db.flush()
    return raw_token


async def confirm_email(db: AsyncSession, raw_token: str) -> int:
    """
    Consume a confirmation token and mark the user's email confirmed.

    Returns the user_id.

    Raises:
        AuthError(INVALID_TOKEN): unknown, used or expired token.
    """
    result = await db.execute(
        select(EmailConfirmationToken).where(EmailConfirmationToken.token_hash == hash_token(raw_token))
    )
    token = result.scalar_one_or_none()
    now = datetime.now(timezone.utc)

    if token is None or token.used_at is not None:
        raise AuthError(AuthErrorKind.INVALID_TOKEN, "Invalid or already used confirmation token")
    if _as_utc(token.expires_at) < now:
        raise AuthError(AuthErrorKind.INVALID_TOKEN, "Confirmation token has expired")

    token.used_at = now
    await db.execute(update(User).where(User.id == token.user_id).values(email_confirmed=True))
    await db.flush()
    logger.info("email_confirmed", user_id=token.user_id)
    return token.user_id
