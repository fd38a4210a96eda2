"""Exams: catalog, scoring and result persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.database import session_scope
from elp.db.models import Exam, ExamQuestion, UserExamResult, utcnow
from elp.errors import InvalidSubmissionError, NotFoundError
from elp.exams.sessions import ExamAttempt
from elp.exercises.scoring import EXAM_QUESTION_TYPES, AnswerKey, ExerciseType, score_exam
from elp.gamification.evaluator import AchievementEvaluator
from elp.gamification.points_service import grant_points
from elp.gamification.rewards import exam_points
from elp.notifications.service import ToastKind, push_toast
from elp.redis_client import get_redis_optional

logger = logging.getLogger(__name__)


@dataclass
class ExamSubmission:
    result_id: int
    exam_id: int
    score: int
    total: int
    percentage: float
    time_taken: int
    auto_submitted: bool
    points_awarded: int
    achievements: list[str] = field(default_factory=list)


async def list_exams(db: AsyncSession, difficulty_id: int | None = None) -> list[Exam]:
    stmt = select(Exam).order_by(Exam.id)
    if difficulty_id is not None:
        stmt = stmt.where(Exam.difficulty_id == difficulty_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_exam(db: AsyncSession, exam_id: int) -> Exam:
    exam = await db.get(Exam, exam_id)
    if exam is None:
        raise NotFoundError("Exam", exam_id)
    return exam


def _answer_key(question: ExamQuestion) -> AnswerKey:
    question_type = ExerciseType(question.question_type)
    if question_type not in EXAM_QUESTION_TYPES:
        msg = f"Exam question {question.id} has unsupported type {question.question_type}"
        raise ValueError(msg)
    correct = next((o for o in question.options if o.is_correct), None)
    return AnswerKey(
        question_id=question.id,
        correct_option_id=correct.id if correct else None,
        canonical_answer=correct.option_text if correct else None,
        points=question.points,
        question_type=question_type,
    )


def build_exam_keys(exam: Exam) -> list[AnswerKey]:
    return [_answer_key(q) for q in exam.questions]


def total_points(exam: Exam) -> int:
    return sum(q.points for q in exam.questions)


def present_exam(exam: Exam) -> dict[str, Any]:
    """Public view of an exam. Fill-in-the-blank questions expose no options."""
    return {
        "id": exam.id,
        "title": exam.title,
        "description": exam.description,
        "time_limit": exam.time_limit,
        "difficulty_id": exam.difficulty_id,
        "total_points": total_points(exam),
        "questions": [
            {
                "id": q.id,
                "prompt": q.prompt,
                "question_type": q.question_type,
                "points": q.points,
                "options": (
                    [{"id": o.id, "text": o.option_text} for o in q.options]
                    if q.question_type == ExerciseType.MULTIPLE_CHOICE.value
                    else []
                ),
            }
            for q in exam.questions
        ],
    }


async def submit_exam(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    exam_id: int,
    answers: dict[str, Any],
    time_taken: int,
    auto_submitted: bool = False,
) -> ExamSubmission:
    """Score and persist an exam attempt.

    Unanswered questions score zero. Points are the percentage rounded
    half-up to the nearest ten.
    """
    exam = await get_exam(db, exam_id)
    known = {str(q.id) for q in exam.questions}
    unknown = sorted(str(k) for k in answers if str(k) not in known)
    if unknown:
        raise InvalidSubmissionError(f"Unknown question ids for exam {exam.id}: {', '.join(unknown)}")

    result = score_exam(build_exam_keys(exam), answers)
    time_taken = max(0, min(time_taken, exam.time_limit * 60))

    row = UserExamResult(
        user_id=user_id,
        exam_id=exam.id,
        score=result.score,
        total_points=result.total,
        time_taken=time_taken,
        auto_submitted=auto_submitted,
        answers={str(k): v for k, v in answers.items()},
        completed_at=utcnow(),
    )
    db.add(row)
    await db.flush()

    points = exam_points(result.score, result.total)
    if points > 0:
        await grant_points(
            db,
            redis,
            user_id,
            points,
            source="exam",
            source_id=str(exam.id),
            description=f'Completed exam "{exam.title}"',
            idempotency_key=f"exam_result:{row.id}",
        )

    achievements = await AchievementEvaluator(db, redis).on_exam_completed(user_id, result.score, result.total)

    percentage = round(result.percentage, 1)
    if auto_submitted:
        message = f"Time's up! Your exam was submitted: {percentage:g}% (+{points} XP)"
        await push_toast(db, redis, user_id, ToastKind.INFO, message, category="exam")
    elif result.is_perfect:
        await push_toast(db, redis, user_id, ToastKind.SUCCESS, f"Perfect score! +{points} XP", category="exam")
    else:
        await push_toast(db, redis, user_id, ToastKind.INFO, f"Exam completed! +{points} XP", category="exam")

    logger.info(
        "Exam %d submitted by user %d: %d/%d in %ds (auto=%s)",
        exam.id, user_id, result.score, result.total, time_taken, auto_submitted,
    )
    return ExamSubmission(
        result_id=row.id,
        exam_id=exam.id,
        score=result.score,
        total=result.total,
        percentage=percentage,
        time_taken=time_taken,
        auto_submitted=auto_submitted,
        points_awarded=points,
        achievements=achievements,
    )


async def submit_attempt(db: AsyncSession, redis: object | None, attempt: ExamAttempt) -> ExamSubmission:
    return await submit_exam(
        db,
        redis,
        attempt.user_id,
        attempt.exam_id,
        attempt.answers,
        time_taken=attempt.time_taken,
        auto_submitted=attempt.auto_submitted,
    )


async def persist_expired_attempt(attempt: ExamAttempt) -> ExamSubmission:
    """Submit handler for timed-out attempts: runs outside any request."""
    async with session_scope() as db:
        return await submit_attempt(db, get_redis_optional(), attempt)


async def list_exam_results(db: AsyncSession, user_id: int, limit: int = 20) -> list[UserExamResult]:
    result = await db.execute(
        select(UserExamResult)
        .where(UserExamResult.user_id == user_id)
        .order_by(UserExamResult.completed_at.desc(), UserExamResult.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
