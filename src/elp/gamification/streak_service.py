"""Daily streak tracking.

Streak days are UTC calendar dates. A visit on the day after the last
activity extends the streak, a same-day visit leaves it unchanged, and any
longer gap starts over at 1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import UserStreak, utcnow
from elp.db.upsert import insert_for
from elp.gamification.evaluator import AchievementEvaluator
from elp.notifications.push import publish_event

logger = logging.getLogger(__name__)


def utc_today(now: datetime | None = None) -> date:
    """The canonical streak clock: today's date in UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date()


@dataclass(frozen=True)
class StreakState:
    current_streak: int
    longest_streak: int
    last_activity_date: date | None


def advance_streak(state: StreakState | None, today: date) -> StreakState:
    """Apply one qualifying visit on ``today`` to a streak state."""
    if state is None or state.last_activity_date is None:
        current = 1
        longest = max(state.longest_streak if state else 0, current)
        return StreakState(current, longest, today)

    last = state.last_activity_date
    if last == today:
        current = max(state.current_streak, 1)
    elif last == today - timedelta(days=1):
        current = state.current_streak + 1
    else:
        # Gap of two or more days. A last date in the future (clock skew) also resets.
        current = 1

    return StreakState(current, max(state.longest_streak, current), today)


async def get_streak(db: AsyncSession, user_id: int) -> UserStreak | None:
    result = await db.execute(select(UserStreak).where(UserStreak.user_id == user_id))
    return result.scalar_one_or_none()


async def record_visit(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    today: date | None = None,
) -> StreakState:
    """Record a qualifying session visit and update the user's streak.

    The row is created if absent and locked for the update (PostgreSQL),
    so two tabs visiting at once cannot double-increment.
    """
    if today is None:
        today = utc_today()

    stmt = insert_for(db, UserStreak).values(
        user_id=user_id,
        current_streak=0,
        longest_streak=0,
        last_activity_date=None,
        updated_at=utcnow(),
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))

    result = await db.execute(
        select(UserStreak)
        .where(UserStreak.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one()

    previous = StreakState(row.current_streak, row.longest_streak, row.last_activity_date)
    new_state = advance_streak(previous, today)

    row.current_streak = new_state.current_streak
    row.longest_streak = new_state.longest_streak
    row.last_activity_date = new_state.last_activity_date
    row.updated_at = utcnow()
    await db.flush()
    logger.debug("Streak for user %d: %d (longest %d)", user_id, new_state.current_streak, new_state.longest_streak)

    if new_state != previous:
        await publish_event(redis, "pubsub:streak_update", {
            "user_id": user_id,
            "current_streak": new_state.current_streak,
            "longest_streak": new_state.longest_streak,
        })

    await AchievementEvaluator(db, redis).on_streak_updated(user_id, new_state.current_streak)

    return new_state
