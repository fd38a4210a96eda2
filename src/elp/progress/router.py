"""Progress API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.catalog.schemas import ContentItemResponse
from elp.config import get_settings
from elp.database import get_session
from elp.db.models import User
from elp.progress.schemas import (
    MarkLearnedResponse,
    ProgressEntry,
    ProgressListResponse,
    RecommendedItem,
    StatisticsResponse,
)
from elp.progress.service import get_progress, get_recommended_content, get_statistics, mark_learned
from elp.redis_client import get_redis_optional

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


@router.get("", response_model=ProgressListResponse)
async def list_my_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    rows = await get_progress(db, user.id)
    return ProgressListResponse(
        progress=[
            ProgressEntry(
                content_item_id=p.content_item_id,
                mastery_level=p.mastery_level,
                last_practiced=p.last_practiced,
                item=ContentItemResponse.model_validate(item),
            )
            for p, item in rows
        ],
        total=len(rows),
    )


@router.get("/statistics", response_model=StatisticsResponse)
async def my_statistics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return StatisticsResponse(**await get_statistics(db, user.id))


@router.get("/recommended", response_model=list[RecommendedItem])
async def recommended(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Items not yet fully mastered."""
    items = await get_recommended_content(db, user.id, limit=get_settings().recommended_content_limit)
    return [RecommendedItem(**i) for i in items]


@router.post("/{content_item_id}/learned", response_model=MarkLearnedResponse)
async def mark_item_learned(
    content_item_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_redis_optional),
):
    """Raise mastery by one level and award points."""
    result = await mark_learned(db, redis, user.id, content_item_id)
    await db.commit()
    return MarkLearnedResponse(
        content_item_id=result.content_item_id,
        mastery_level=result.mastery_level,
        previous_level=result.previous_level,
        points_awarded=result.points_awarded,
        achievements=result.achievements,
    )
