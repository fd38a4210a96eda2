"""Exam API endpoints.

An attempt lives in the application's ``ExamSessionManager`` from ``start``
until it is submitted, abandoned or auto-submitted when the countdown hits
zero.
"""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.database import get_session
from elp.db.models import User
from elp.errors import ConflictError, InvalidSubmissionError
from elp.exams.schemas import (
    AttemptResponse,
    ExamDetail,
    ExamResultResponse,
    ExamSubmissionResponse,
    ExamSummary,
    RecordAnswersRequest,
)
from elp.exams.service import get_exam, list_exam_results, list_exams, present_exam, submit_attempt
from elp.exams.sessions import ExamAttempt, ExamSessionManager
from elp.redis_client import get_redis_optional

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/exams", tags=["Exams"])


def get_exam_sessions(request: Request) -> ExamSessionManager:
    return request.app.state.exam_sessions


def _attempt_response(attempt: ExamAttempt) -> AttemptResponse:
    return AttemptResponse(
        exam_id=attempt.exam_id,
        started_at=attempt.started_at,
        time_limit_seconds=attempt.time_limit_seconds,
        remaining_seconds=attempt.remaining_seconds,
        answers=attempt.answers,
    )


@router.get("", response_model=list[ExamSummary])
async def get_exams(difficulty_id: int | None = None, db: AsyncSession = Depends(get_session)):
    return [
        ExamSummary(
            id=e.id,
            title=e.title,
            description=e.description,
            time_limit=e.time_limit,
            difficulty_id=e.difficulty_id,
            question_count=len(e.questions),
        )
        for e in await list_exams(db, difficulty_id)
    ]


@router.get("/results", response_model=list[ExamResultResponse])
async def get_my_exam_results(
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return [ExamResultResponse.model_validate(r) for r in await list_exam_results(db, user.id, limit)]


@router.get("/{exam_id}", response_model=ExamDetail)
async def get_exam_detail(exam_id: int, db: AsyncSession = Depends(get_session)):
    return ExamDetail(**present_exam(await get_exam(db, exam_id)))


@router.post("/{exam_id}/start", response_model=AttemptResponse, status_code=201)
async def start_exam(
    exam_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    sessions: ExamSessionManager = Depends(get_exam_sessions),
):
    """Start the countdown. Restarting discards the previous attempt."""
    exam = await get_exam(db, exam_id)
    attempt = sessions.start(user.id, exam.id, exam.time_limit)
    logger.info("exam_started", user_id=user.id, exam_id=exam.id, time_limit=exam.time_limit)
    return _attempt_response(attempt)


@router.put("/{exam_id}/answers", response_model=AttemptResponse)
async def record_answers(
    exam_id: int,
    body: RecordAnswersRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    sessions: ExamSessionManager = Depends(get_exam_sessions),
):
    exam = await get_exam(db, exam_id)
    known = {str(q.id) for q in exam.questions}
    unknown = sorted(k for k in body.answers if str(k) not in known)
    if unknown:
        raise InvalidSubmissionError(f"Unknown question ids for exam {exam.id}: {', '.join(unknown)}")

    if sessions.get(user.id, exam.id) is None:
        raise HTTPException(status_code=404, detail="No active attempt for this exam")
    attempt = None
    for question_id, answer in body.answers.items():
        attempt = sessions.record_answer(user.id, exam.id, question_id, answer)
    return _attempt_response(attempt or sessions.get(user.id, exam.id))


@router.get("/{exam_id}/attempt", response_model=AttemptResponse)
async def get_attempt(
    exam_id: int,
    user: User = Depends(get_current_user),
    sessions: ExamSessionManager = Depends(get_exam_sessions),
):
    attempt = sessions.get(user.id, exam_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="No active attempt for this exam")
    return _attempt_response(attempt)


@router.post("/{exam_id}/submit", response_model=ExamSubmissionResponse)
async def submit(
    exam_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_redis_optional),
    sessions: ExamSessionManager = Depends(get_exam_sessions),
):
    """Stop the clock and score the answers recorded so far."""
    attempt = sessions.finish(user.id, exam_id)
    if attempt is None:
        raise ConflictError("No active attempt for this exam; it may have been auto-submitted")
    result = await submit_attempt(db, redis, attempt)
    await db.commit()
    return ExamSubmissionResponse(**asdict(result))


@router.delete("/{exam_id}/attempt", status_code=204)
async def abandon_attempt(
    exam_id: int,
    user: User = Depends(get_current_user),
    sessions: ExamSessionManager = Depends(get_exam_sessions),
):
    """Leave the exam without submitting."""
    if not sessions.abandon(user.id, exam_id):
        raise HTTPException(status_code=404, detail="No active attempt for this exam")
