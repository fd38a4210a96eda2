"""Achievement catalog seed data."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import Achievement
from elp.db.upsert import insert_for

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "slug": "first_login",
        "name": "First Login",
        "description": "Create your account and log in for the first time",
        "points": 10,
        "icon": "log-in",
        "trigger_type": "signup",
        "threshold": 1,
        "sort_order": 1,
    },
    {
        "slug": "streak_warrior",
        "name": "Streak Warrior",
        "description": "Study seven days in a row",
        "points": 50,
        "icon": "flame",
        "trigger_type": "streak",
        "threshold": 7,
        "sort_order": 2,
    },
    {
        "slug": "quiz_whiz",
        "name": "Quiz Whiz",
        "description": "Complete five exams",
        "points": 50,
        "icon": "graduation-cap",
        "trigger_type": "exam_count",
        "threshold": 5,
        "sort_order": 3,
    },
    {
        "slug": "exercise_champion",
        "name": "Exercise Champion",
        "description": "Complete ten exercises",
        "points": 50,
        "icon": "trophy",
        "trigger_type": "exercise_count",
        "threshold": 10,
        "sort_order": 4,
    },
    {
        "slug": "perfect_score",
        "name": "Perfect Score",
        "description": "Answer every question correctly in an exercise or exam",
        "points": 25,
        "icon": "star",
        "trigger_type": "perfect_score",
        "threshold": 1,
        "sort_order": 5,
    },
    {
        "slug": "word_master",
        "name": "Word Master",
        "description": "Learn fifty words",
        "points": 100,
        "icon": "book-open",
        "trigger_type": "mastered_items",
        "threshold": 50,
        "sort_order": 6,
    },
]


async def seed_achievements(db: AsyncSession) -> int:
    """Upsert the achievement catalog. Returns number of achievements seeded."""
    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        stmt = insert_for(db, Achievement).values(**data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["slug"],
            set_={
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "points": stmt.excluded.points,
                "icon": stmt.excluded.icon,
                "trigger_type": stmt.excluded.trigger_type,
                "threshold": stmt.excluded.threshold,
                "sort_order": stmt.excluded.sort_order,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
