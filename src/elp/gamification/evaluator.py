"""Achievement evaluator: checks unlock conditions after qualifying events."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import Achievement, UserExamResult, UserExerciseResult, UserProgress
from elp.gamification.achievement_service import award_achievement

logger = logging.getLogger(__name__)

# (slug, threshold) pairs per counter
STREAK_ACHIEVEMENTS = [("streak_warrior", 7)]
EXERCISE_COUNT_ACHIEVEMENTS = [("exercise_champion", 10)]
EXAM_COUNT_ACHIEVEMENTS = [("quiz_whiz", 5)]
MASTERED_ITEM_ACHIEVEMENTS = [("word_master", 50)]


class AchievementEvaluator:
    """Evaluates achievement triggers for learning events.

    Every check uses ``>=`` against its threshold; award_achievement is
    idempotent, so re-evaluating an already-crossed threshold is a no-op.
    """

    def __init__(self, db: AsyncSession, redis: object | None) -> None:
        self.db = db
        self.redis = redis
        self._catalog: dict[str, Achievement] | None = None

    async def _load_catalog(self) -> dict[str, Achievement]:
        if self._catalog is None:
            result = await self.db.execute(select(Achievement))
            self._catalog = {a.slug: a for a in result.scalars()}
        return self._catalog

    async def _award(self, user_id: int, slug: str) -> bool:
        catalog = await self._load_catalog()
        achievement = catalog.get(slug)
        if achievement is None:
            logger.warning("Achievement %s is not in the catalog", slug)
            return False
        return await award_achievement(self.db, self.redis, user_id, slug, achievement=achievement)

    async def _check_thresholds(
        self,
        user_id: int,
        value: int,
        thresholds: list[tuple[str, int]],
    ) -> list[str]:
        awarded: list[str] = []
        for slug, threshold in thresholds:
            if value >= threshold and await self._award(user_id, slug):
                awarded.append(slug)
        return awarded

    # ── Events ──

    async def on_signup(self, user_id: int) -> list[str]:
        return ["first_login"] if await self._award(user_id, "first_login") else []

    async def on_streak_updated(self, user_id: int, current_streak: int) -> list[str]:
        return await self._check_thresholds(user_id, current_streak, STREAK_ACHIEVEMENTS)

    async def on_exercise_completed(self, user_id: int, score: int, total: int) -> list[str]:
        count = await self._count(UserExerciseResult, user_id)
        awarded = await self._check_thresholds(user_id, count, EXERCISE_COUNT_ACHIEVEMENTS)
        awarded += await self.check_perfect_score(user_id, score, total)
        return awarded

    async def on_exam_completed(self, user_id: int, score: int, total: int) -> list[str]:
        count = await self._count(UserExamResult, user_id)
        awarded = await self._check_thresholds(user_id, count, EXAM_COUNT_ACHIEVEMENTS)
        awarded += await self.check_perfect_score(user_id, score, total)
        return awarded

    async def on_item_mastered(self, user_id: int) -> list[str]:
        result = await self.db.execute(
            select(func.count())
            .select_from(UserProgress)
            .where(UserProgress.user_id == user_id, UserProgress.mastery_level > 0)
        )
        learned = result.scalar_one()
        return await self._check_thresholds(user_id, learned, MASTERED_ITEM_ACHIEVEMENTS)

    async def check_perfect_score(self, user_id: int, score: int, total: int) -> list[str]:
        if total > 0 and score == total and await self._award(user_id, "perfect_score"):
            return ["perfect_score"]
        return []

    # ── Helpers ──

    async def _count(self, model: type, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(model).where(model.user_id == user_id)  # type: ignore[attr-defined]
        )
        return result.scalar_one()
