"""Gamification API endpoints: points, streak, achievements and the dashboard visit."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.database import get_session
from elp.db.models import User
from elp.gamification.achievement_service import list_achievements, list_user_achievements
from elp.gamification.levels import level_progress
from elp.gamification.points_service import get_or_create_points, get_points_history
from elp.gamification.schemas import (
    AchievementResponse,
    AllAchievementsResponse,
    EarnedAchievementResponse,
    PointsHistoryEntry,
    PointsHistoryResponse,
    PointsResponse,
    StreakResponse,
    UserAchievementsResponse,
)
from elp.gamification.streak_service import get_streak, record_visit, utc_today
from elp.redis_client import get_redis_optional

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/gamification/points", response_model=PointsResponse)
async def get_my_points(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Current user's points and level."""
    wallet = await get_or_create_points(db, user.id)
    await db.commit()
    return PointsResponse(total_points=wallet.total_points, **level_progress(wallet.total_points))


@router.get("/gamification/points/history", response_model=PointsHistoryResponse)
async def get_my_points_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    entries, total = await get_points_history(db, user.id, page, per_page)
    return PointsHistoryResponse(
        entries=[
            PointsHistoryEntry(
                amount=e.amount,
                source=e.source,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/gamification/streak", response_model=StreakResponse)
async def get_my_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    streak = await get_streak(db, user.id)
    if streak is None:
        return StreakResponse(current_streak=0, longest_streak=0)
    return StreakResponse(
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_activity_date=streak.last_activity_date,
        active_today=streak.last_activity_date == utc_today(),
    )


@router.post("/dashboard/visit", response_model=StreakResponse)
async def dashboard_visit(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_redis_optional),
):
    """Record the once-per-session dashboard visit that drives the daily streak."""
    state = await record_visit(db, redis, user.id)
    await db.commit()
    return StreakResponse(
        current_streak=state.current_streak,
        longest_streak=state.longest_streak,
        last_activity_date=state.last_activity_date,
        active_today=True,
    )


@router.get("/achievements", response_model=AllAchievementsResponse)
async def get_achievements(db: AsyncSession = Depends(get_session)):
    """The achievement catalog."""
    achievements = await list_achievements(db)
    return AllAchievementsResponse(achievements=[AchievementResponse.model_validate(a) for a in achievements])


@router.get("/achievements/me", response_model=UserAchievementsResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    earned = await list_user_achievements(db, user.id)
    catalog = await list_achievements(db)
    return UserAchievementsResponse(
        earned=[
            EarnedAchievementResponse(
                **AchievementResponse.model_validate(achievement).model_dump(),
                earned_at=ua.earned_at,
            )
            for ua, achievement in earned
        ],
        total_available=len(catalog),
        total_earned=len(earned),
    )
