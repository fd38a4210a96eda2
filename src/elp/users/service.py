"""User profile management."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from elp.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def update_profile(
    db: AsyncSession,
    user: User,
    full_name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """
    Update user profile fields. ``None`` leaves a field unchanged; an empty
    string clears it.
    """
    if full_name is not None:
        user.full_name = full_name.strip() or None
    if avatar_url is not None:
        user.avatar_url = avatar_url.strip() or None

    await db.flush()
    logger.info("profile_updated", user_id=user.id)
    return user
