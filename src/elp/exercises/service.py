"""Exercise catalog and attempt submission."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import Exercise, ExerciseQuestion, UserExerciseResult, utcnow
from elp.errors import InvalidSubmissionError, NotFoundError
from elp.exercises.scoring import (
    EXERCISE_TYPE_LABELS,
    AnswerKey,
    ExerciseType,
    score_questions,
    shuffled,
)
from elp.gamification.evaluator import AchievementEvaluator
from elp.gamification.points_service import grant_points
from elp.gamification.rewards import exercise_points
from elp.notifications.service import ToastKind, push_toast

logger = logging.getLogger(__name__)


@dataclass
class ExerciseSubmission:
    result_id: int
    exercise_id: int
    score: int
    total: int
    points_awarded: int
    achievements: list[str] = field(default_factory=list)

    @property
    def is_perfect(self) -> bool:
        return self.total > 0 and self.score == self.total


def list_exercise_types() -> list[dict[str, str]]:
    return [{"slug": t.value, "name": EXERCISE_TYPE_LABELS[t]} for t in ExerciseType]


async def list_exercises(
    db: AsyncSession,
    exercise_type: str | None = None,
    difficulty_id: int | None = None,
    content_item_id: int | None = None,
) -> list[Exercise]:
    stmt = select(Exercise).order_by(Exercise.id)
    if exercise_type is not None:
        stmt = stmt.where(Exercise.exercise_type == ExerciseType(exercise_type).value)
    if difficulty_id is not None:
        stmt = stmt.where(Exercise.difficulty_id == difficulty_id)
    if content_item_id is not None:
        stmt = stmt.where(Exercise.content_item_id == content_item_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_exercise(db: AsyncSession, exercise_id: int) -> Exercise:
    exercise = await db.get(Exercise, exercise_id)
    if exercise is None:
        raise NotFoundError("Exercise", exercise_id)
    return exercise


def _answer_key(question: ExerciseQuestion) -> AnswerKey:
    correct = [o for o in question.options if o.is_correct]
    if len(correct) != 1:
        logger.warning(
            "Question %d has %d correct options; expected exactly one",
            question.id,
            len(correct),
        )
    option = correct[0] if correct else None
    return AnswerKey(
        question_id=question.id,
        correct_option_id=option.id if option else None,
        canonical_answer=option.text if option else None,
        points=question.points,
    )


def build_answer_keys(exercise: Exercise) -> list[AnswerKey]:
    return [_answer_key(q) for q in exercise.questions]


def present_exercise(exercise: Exercise, rng: random.Random | None = None) -> dict[str, Any]:
    """Public view of an exercise: no correctness flags.

    Matching exercises expose one shared, shuffled pool of definitions
    instead of per-question options. Fill-in-the-blank questions expose no
    options, since the only stored option is the answer.
    """
    questions = [
        {
            "id": q.id,
            "prompt": q.prompt,
            "audio_url": q.audio_url,
            "points": q.points,
            "options": [{"id": o.id, "text": o.text} for o in q.options],
        }
        for q in exercise.questions
    ]
    definitions: list[dict[str, Any]] = []
    if exercise.exercise_type == ExerciseType.MATCHING.value:
        pool = [{"id": o.id, "text": o.text} for q in exercise.questions for o in q.options if o.is_correct]
        definitions = shuffled(pool, rng)
        for q in questions:
            q["options"] = []
    elif exercise.exercise_type == ExerciseType.FILL_IN_BLANK.value:
        for q in questions:
            q["options"] = []
    return {
        "id": exercise.id,
        "title": exercise.title,
        "description": exercise.description,
        "exercise_type": exercise.exercise_type,
        "content_item_id": exercise.content_item_id,
        "difficulty_id": exercise.difficulty_id,
        "questions": questions,
        "definitions": definitions,
    }


def _validate_answers(exercise: Exercise, answers: dict[str, Any]) -> None:
    known = {str(q.id) for q in exercise.questions}
    unknown = sorted(str(k) for k in answers if str(k) not in known)
    if unknown:
        raise InvalidSubmissionError(f"Unknown question ids for exercise {exercise.id}: {', '.join(unknown)}")


async def submit_exercise(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    exercise_id: int,
    answers: dict[str, Any],
) -> ExerciseSubmission:
    """Score an exercise attempt and run the completion side effects.

    1. Score with the exercise's scorer
    2. Store a user_exercise_results row
    3. Grant score * 10 points
    4. Evaluate exercise achievements
    5. Push the outcome toast
    """
    exercise = await get_exercise(db, exercise_id)
    _validate_answers(exercise, answers)

    result = score_questions(exercise.exercise_type, build_answer_keys(exercise), answers)

    row = UserExerciseResult(
        user_id=user_id,
        exercise_id=exercise.id,
        score=result.score,
        total_questions=result.total,
        answers={str(k): v for k, v in answers.items()},
        completed_at=utcnow(),
    )
    db.add(row)
    await db.flush()

    points = exercise_points(result.score)
    if points > 0:
        await grant_points(
            db,
            redis,
            user_id,
            points,
            source="exercise",
            source_id=str(exercise.id),
            description=f'Completed exercise "{exercise.title}"',
            idempotency_key=f"exercise_result:{row.id}",
        )

    achievements = await AchievementEvaluator(db, redis).on_exercise_completed(user_id, result.score, result.total)

    if result.is_perfect:
        await push_toast(db, redis, user_id, ToastKind.SUCCESS, f"Perfect score! +{points} XP", category="exercise")
    else:
        await push_toast(db, redis, user_id, ToastKind.INFO, f"Exercise completed! +{points} XP", category="exercise")

    logger.info(
        "Exercise %d submitted by user %d: %d/%d (+%d)",
        exercise.id, user_id, result.score, result.total, points,
    )
    return ExerciseSubmission(
        result_id=row.id,
        exercise_id=exercise.id,
        score=result.score,
        total=result.total,
        points_awarded=points,
        achievements=achievements,
    )


async def list_exercise_results(db: AsyncSession, user_id: int, limit: int = 20) -> list[UserExerciseResult]:
    result = await db.execute(
        select(UserExerciseResult)
        .where(UserExerciseResult.user_id == user_id)
        .order_by(UserExerciseResult.completed_at.desc(), UserExerciseResult.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
