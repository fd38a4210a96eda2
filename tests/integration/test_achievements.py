"""Achievement awards and evaluation."""

import pytest
from sqlalchemy import func, select

from elp.db.models import Achievement, PointsLedger, UserAchievement
from elp.gamification.achievement_service import award_achievement, list_achievements, list_user_achievements
from elp.gamification.evaluator import AchievementEvaluator
from elp.gamification.points_service import get_or_create_points
from elp.gamification.seed import ACHIEVEMENT_SEED_DATA, seed_achievements


async def _earned(db, user_id) -> list[str]:
    return [a.slug for _, a in await list_user_achievements(db, user_id)]


class TestSeed:
    @pytest.mark.asyncio
    async def test_catalog_seeded(self, db_session):
        achievements = await list_achievements(db_session)
        assert [a.slug for a in achievements] == [d["slug"] for d in ACHIEVEMENT_SEED_DATA]
        names = {a.name for a in achievements}
        assert {"First Login", "Streak Warrior", "Quiz Whiz", "Exercise Champion", "Perfect Score", "Word Master"} == names

    @pytest.mark.asyncio
    async def test_reseed_is_idempotent(self, db_session):
        await seed_achievements(db_session)
        count = (await db_session.execute(select(func.count()).select_from(Achievement))).scalar_one()
        assert count == len(ACHIEVEMENT_SEED_DATA)


class TestAwardAchievement:
    @pytest.mark.asyncio
    async def test_award_grants_points_once(self, db_session, user):
        assert await award_achievement(db_session, None, user.id, "perfect_score") is True
        assert await award_achievement(db_session, None, user.id, "perfect_score") is False

        rows = (await db_session.execute(
            select(func.count()).select_from(UserAchievement).where(UserAchievement.user_id == user.id)
        )).scalar_one()
        assert rows == 1
        assert (await get_or_create_points(db_session, user.id)).total_points == 25

    @pytest.mark.asyncio
    async def test_unknown_slug(self, db_session, user):
        assert await award_achievement(db_session, None, user.id, "moon_landing") is False


class TestEvaluator:
    @pytest.mark.asyncio
    async def test_perfect_score_twice_gives_one_row(self, db_session, user):
        evaluator = AchievementEvaluator(db_session, None)
        assert await evaluator.check_perfect_score(user.id, 5, 5) == ["perfect_score"]
        assert await evaluator.check_perfect_score(user.id, 5, 5) == []
        assert await _earned(db_session, user.id) == ["perfect_score"]

    @pytest.mark.asyncio
    async def test_imperfect_or_empty_not_awarded(self, db_session, user):
        evaluator = AchievementEvaluator(db_session, None)
        assert await evaluator.check_perfect_score(user.id, 4, 5) == []
        assert await evaluator.check_perfect_score(user.id, 0, 0) == []

    @pytest.mark.asyncio
    async def test_streak_threshold_inclusive(self, db_session, user):
        evaluator = AchievementEvaluator(db_session, None)
        assert await evaluator.on_streak_updated(user.id, 6) == []
        assert await evaluator.on_streak_updated(user.id, 7) == ["streak_warrior"]
        assert await evaluator.on_streak_updated(user.id, 8) == []

    @pytest.mark.asyncio
    async def test_signup_awards_first_login(self, db_session, user):
        evaluator = AchievementEvaluator(db_session, None)
        assert await evaluator.on_signup(user.id) == ["first_login"]
        assert await evaluator.on_signup(user.id) == []

    @pytest.mark.asyncio
    async def test_achievement_points_use_idempotency_key(self, db_session, user):
        await AchievementEvaluator(db_session, None).on_signup(user.id)
        key = (await db_session.execute(
            select(PointsLedger.idempotency_key).where(PointsLedger.source == "achievement")
        )).scalar_one()
        assert key == f"achievement:first_login:{user.id}"
