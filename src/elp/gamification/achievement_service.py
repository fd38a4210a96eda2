"""Achievement award service with duplicate prevention and notification."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import Achievement, UserAchievement, utcnow
from elp.db.upsert import insert_for
from elp.gamification.points_service import grant_points
from elp.notifications.push import publish_event
from elp.notifications.service import ToastKind, push_toast

logger = logging.getLogger(__name__)


async def get_achievement_by_slug(db: AsyncSession, slug: str) -> Achievement | None:
    result = await db.execute(select(Achievement).where(Achievement.slug == slug))
    return result.scalar_one_or_none()


async def award_achievement(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    slug: str,
    achievement: Achievement | None = None,
) -> bool:
    """Award an achievement to a user.

    Returns True if awarded, False if already earned or unknown.
    Handles:
    1. Insert into user_achievements (ON CONFLICT DO NOTHING on the user/achievement pair)
    2. Grant achievement points (idempotent via idempotency_key)
    3. Emit toast + pub/sub event
    """
    if achievement is None:
        achievement = await get_achievement_by_slug(db, slug)
    if achievement is None:
        logger.warning("Achievement not found: %s", slug)
        return False

    stmt = insert_for(db, UserAchievement).values(
        user_id=user_id,
        achievement_id=achievement.id,
        earned_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "achievement_id"])
    inserted = (await db.execute(stmt.returning(UserAchievement.id))).scalar_one_or_none()
    if inserted is None:
        return False

    await grant_points(
        db=db,
        redis=redis,
        user_id=user_id,
        amount=achievement.points,
        source="achievement",
        source_id=achievement.slug,
        description=f'Unlocked achievement: "{achievement.name}"',
        idempotency_key=f"achievement:{achievement.slug}:{user_id}",
    )

    await _emit_achievement_unlocked(db, redis, user_id, achievement)
    logger.info("Achievement %s awarded to user %d", achievement.slug, user_id)
    return True


async def _emit_achievement_unlocked(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    achievement: Achievement,
) -> None:
    await push_toast(
        db,
        redis,
        user_id,
        ToastKind.SUCCESS,
        f'Achievement unlocked: "{achievement.name}" +{achievement.points} XP',
        category="gamification",
        title="Achievement unlocked!",
        action_url="/dashboard/achievements",
    )
    await publish_event(redis, "pubsub:achievement_unlocked", {
        "user_id": user_id,
        "slug": achievement.slug,
        "name": achievement.name,
        "points": achievement.points,
    })


async def list_achievements(db: AsyncSession) -> list[Achievement]:
    result = await db.execute(select(Achievement).order_by(Achievement.sort_order, Achievement.id))
    return list(result.scalars().all())


async def list_user_achievements(db: AsyncSession, user_id: int) -> list[tuple[UserAchievement, Achievement]]:
    """Earned achievements for a user, newest first."""
    result = await db.execute(
        select(UserAchievement, Achievement)
        .join(Achievement, UserAchievement.achievement_id == Achievement.id)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc())
    )
    return [(row.UserAchievement, row.Achievement) for row in result]
