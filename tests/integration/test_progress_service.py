"""Progress ledger: mark learned, statistics, recommendations."""

import pytest
from sqlalchemy import select

from elp.db.models import Notification, UserExerciseResult, UserProgress
from elp.errors import NotFoundError
from elp.gamification.points_service import get_or_create_points
from elp.progress.service import get_progress, get_recommended_content, get_statistics, mark_learned
from tests.factories import make_category, make_content, make_difficulty, make_exercise


class TestMarkLearned:
    @pytest.mark.asyncio
    async def test_first_mark(self, db_session, user):
        item = await make_content(db_session)
        result = await mark_learned(db_session, None, user.id, item.id)

        assert result.previous_level == 0
        assert result.mastery_level == 1
        assert result.points_awarded == 5
        assert (await get_or_create_points(db_session, user.id)).total_points == 5

        toast = (await db_session.execute(
            select(Notification).where(Notification.user_id == user.id, Notification.category == "progress")
        )).scalar_one()
        assert toast.message == "Word marked as learned! +5 XP"

    @pytest.mark.asyncio
    async def test_mastery_caps_at_three(self, db_session, user):
        item = await make_content(db_session)
        levels = [(await mark_learned(db_session, None, user.id, item.id)).mastery_level for _ in range(5)]
        assert levels == [1, 2, 3, 3, 3]

        rows = (await db_session.execute(
            select(UserProgress).where(UserProgress.user_id == user.id)
        )).scalars().all()
        assert len(rows) == 1
        assert (await get_or_create_points(db_session, user.id)).total_points == 15

    @pytest.mark.asyncio
    async def test_unknown_item(self, db_session, user):
        with pytest.raises(NotFoundError):
            await mark_learned(db_session, None, user.id, 9999)

    @pytest.mark.asyncio
    async def test_progress_listing(self, db_session, user):
        item = await make_content(db_session, word="chair")
        await mark_learned(db_session, None, user.id, item.id)
        rows = await get_progress(db_session, user.id)
        assert [(p.mastery_level, c.word) for p, c in rows] == [(1, "chair")]


class TestStatistics:
    @pytest.mark.asyncio
    async def test_empty_user(self, db_session, user):
        stats = await get_statistics(db_session, user.id)
        assert stats == {
            "total_words": 0,
            "total_exercises": 0,
            "streak_days": 0,
            "mastery_levels": {"beginner": 0, "intermediate": 0, "advanced": 0},
            "recent_activity": [],
        }

    @pytest.mark.asyncio
    async def test_counts_and_recent_activity(self, db_session, user):
        beginner = await make_difficulty(db_session, "beginner", 1)
        advanced = await make_difficulty(db_session, "advanced", 3)
        category = await make_category(db_session)
        for word, level in (("cat", beginner), ("dog", beginner), ("ubiquitous", advanced)):
            item = await make_content(db_session, word=word, category=category, difficulty=level)
            await mark_learned(db_session, None, user.id, item.id)

        exercise = await make_exercise(db_session, "multiple-choice", [("q", [("a", True), ("b", False)])], title="Animals")
        db_session.add(UserExerciseResult(user_id=user.id, exercise_id=exercise.id, score=2, total_questions=3, answers={}))
        await db_session.flush()

        stats = await get_statistics(db_session, user.id)
        assert stats["total_words"] == 3
        assert stats["total_exercises"] == 1
        assert stats["mastery_levels"] == {"beginner": 2, "intermediate": 0, "advanced": 1}
        assert stats["recent_activity"][0]["activity"] == "Animals"
        assert stats["recent_activity"][0]["score"] == 67


class TestRecommendations:
    @pytest.mark.asyncio
    async def test_excludes_fully_mastered(self, db_session, user):
        category = await make_category(db_session)
        known = await make_content(db_session, word="cat", category=category)
        fresh = await make_content(db_session, word="dog", category=category, audio_url="https://cdn/dog.mp3")
        for _ in range(3):
            await mark_learned(db_session, None, user.id, known.id)

        recommended = await get_recommended_content(db_session, user.id)
        assert [r["id"] for r in recommended] == [fresh.id]
        assert recommended[0]["type"] == "listening"
        assert recommended[0]["difficulty"] == "beginner"
        assert recommended[0]["category"] == "Home"

    @pytest.mark.asyncio
    async def test_limit(self, db_session, user):
        category = await make_category(db_session)
        for i in range(5):
            await make_content(db_session, word=f"w{i}", category=category)
        assert len(await get_recommended_content(db_session, user.id, limit=2)) == 2
