"""Progress ledger: per-user mastery of content items, statistics and recommendations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import (
    Category,
    ContentItem,
    DifficultyLevel,
    Exercise,
    UserExerciseResult,
    UserProgress,
    UserStreak,
    utcnow,
)
from elp.db.upsert import insert_for
from elp.errors import NotFoundError
from elp.gamification.evaluator import AchievementEvaluator
from elp.gamification.points_service import grant_points
from elp.gamification.rewards import LEARNED_WORD_POINTS
from elp.notifications.push import publish_event
from elp.notifications.service import ToastKind, push_toast

logger = logging.getLogger(__name__)

MAX_MASTERY = 3
DIFFICULTY_BUCKETS = ("beginner", "intermediate", "advanced")


@dataclass
class MarkLearnedResult:
    content_item_id: int
    mastery_level: int
    previous_level: int
    points_awarded: int
    achievements: list[str] = field(default_factory=list)


async def get_progress(db: AsyncSession, user_id: int) -> list[tuple[UserProgress, ContentItem]]:
    result = await db.execute(
        select(UserProgress, ContentItem)
        .join(ContentItem, UserProgress.content_item_id == ContentItem.id)
        .where(UserProgress.user_id == user_id)
        .order_by(UserProgress.last_practiced.desc(), UserProgress.id.desc())
    )
    return [(row.UserProgress, row.ContentItem) for row in result]


async def mark_learned(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    content_item_id: int,
) -> MarkLearnedResult:
    """Raise mastery of an item by one level (capped at 3) and reward the step.

    Points are only granted when mastery actually increases, so re-marking
    a fully mastered word is free.
    """
    item = await db.get(ContentItem, content_item_id)
    if item is None:
        raise NotFoundError("Content item", content_item_id)

    existing = await db.execute(
        select(UserProgress.mastery_level)
        .where(UserProgress.user_id == user_id, UserProgress.content_item_id == content_item_id)
        .with_for_update()
    )
    previous_level = existing.scalar_one_or_none() or 0

    now = utcnow()
    stmt = insert_for(db, UserProgress).values(
        user_id=user_id,
        content_item_id=content_item_id,
        mastery_level=1,
        last_practiced=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "content_item_id"],
        set_={
            "mastery_level": case(
                (UserProgress.mastery_level >= MAX_MASTERY, MAX_MASTERY),
                else_=UserProgress.mastery_level + 1,
            ),
            "last_practiced": now,
        },
    )
    new_level = (await db.execute(stmt.returning(UserProgress.mastery_level))).scalar_one()

    points = 0
    if new_level > previous_level:
        points = LEARNED_WORD_POINTS
        await grant_points(
            db,
            redis,
            user_id,
            points,
            source="progress",
            source_id=str(content_item_id),
            description=f'Practiced "{item.word}" (mastery {new_level})',
        )

    achievements = await AchievementEvaluator(db, redis).on_item_mastered(user_id)

    await publish_event(redis, "pubsub:progress_updated", {
        "user_id": user_id,
        "content_item_id": content_item_id,
        "mastery_level": new_level,
    })
    if points:
        await push_toast(
            db, redis, user_id, ToastKind.SUCCESS,
            f"Word marked as learned! +{points} XP",
            category="progress",
        )

    return MarkLearnedResult(
        content_item_id=content_item_id,
        mastery_level=new_level,
        previous_level=previous_level,
        points_awarded=points,
        achievements=achievements,
    )


async def get_statistics(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """Dashboard statistics for a user."""
    total_words = (await db.execute(
        select(func.count())
        .select_from(UserProgress)
        .where(UserProgress.user_id == user_id, UserProgress.mastery_level > 0)
    )).scalar_one()

    total_exercises = (await db.execute(
        select(func.count()).select_from(UserExerciseResult).where(UserExerciseResult.user_id == user_id)
    )).scalar_one()

    streak = (await db.execute(
        select(UserStreak.current_streak).where(UserStreak.user_id == user_id)
    )).scalar_one_or_none()

    mastery_levels = dict.fromkeys(DIFFICULTY_BUCKETS, 0)
    by_difficulty = await db.execute(
        select(DifficultyLevel.name, func.count())
        .select_from(UserProgress)
        .join(ContentItem, UserProgress.content_item_id == ContentItem.id)
        .join(DifficultyLevel, ContentItem.difficulty_id == DifficultyLevel.id)
        .where(UserProgress.user_id == user_id, UserProgress.mastery_level > 0)
        .group_by(DifficultyLevel.name)
    )
    for name, count in by_difficulty:
        if name in mastery_levels:
            mastery_levels[name] = count

    recent = await db.execute(
        select(UserExerciseResult, Exercise.title)
        .join(Exercise, UserExerciseResult.exercise_id == Exercise.id)
        .where(UserExerciseResult.user_id == user_id)
        .order_by(UserExerciseResult.completed_at.desc(), UserExerciseResult.id.desc())
        .limit(5)
    )
    recent_activity = [
        {
            "date": row.UserExerciseResult.completed_at.date().isoformat(),
            "activity": row.title or "Exercise",
            "score": (
                round(row.UserExerciseResult.score / row.UserExerciseResult.total_questions * 100)
                if row.UserExerciseResult.total_questions
                else 0
            ),
        }
        for row in recent
    ]

    return {
        "total_words": total_words,
        "total_exercises": total_exercises,
        "streak_days": streak or 0,
        "mastery_levels": mastery_levels,
        "recent_activity": recent_activity,
    }


def _content_type(item: ContentItem) -> str:
    if item.audio_url:
        return "listening"
    if item.image_url:
        return "video"
    return "reading"


async def get_recommended_content(db: AsyncSession, user_id: int, limit: int = 10) -> list[dict[str, Any]]:
    """Items the user has not fully mastered yet, new items included."""
    mastered = (
        select(UserProgress.content_item_id)
        .where(UserProgress.user_id == user_id, UserProgress.mastery_level >= MAX_MASTERY)
    )
    result = await db.execute(
        select(ContentItem, Category.title, DifficultyLevel.name)
        .join(Category, ContentItem.category_id == Category.id, isouter=True)
        .join(DifficultyLevel, ContentItem.difficulty_id == DifficultyLevel.id, isouter=True)
        .where(ContentItem.id.not_in(mastered))
        .order_by(ContentItem.id)
        .limit(limit)
    )
    return [
        {
            "id": row.ContentItem.id,
            "title": row.ContentItem.word,
            "description": row.ContentItem.definition,
            "type": _content_type(row.ContentItem),
            "difficulty": row.name or "beginner",
            "category": row.title or "Vocabulary",
        }
        for row in result
    ]
