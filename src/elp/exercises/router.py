"""Exercise API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.database import get_session
from elp.db.models import User
from elp.exercises.schemas import (
    ExerciseDetail,
    ExerciseResultResponse,
    ExerciseSubmissionResponse,
    ExerciseSummary,
    ExerciseTypeResponse,
    SubmitExerciseRequest,
)
from elp.exercises.scoring import ExerciseType
from elp.exercises.service import (
    get_exercise,
    list_exercise_results,
    list_exercise_types,
    list_exercises,
    present_exercise,
    submit_exercise,
)
from elp.redis_client import get_redis_optional

router = APIRouter(prefix="/api/v1/exercises", tags=["Exercises"])


@router.get("/types", response_model=list[ExerciseTypeResponse])
async def get_exercise_types():
    return [ExerciseTypeResponse(**t) for t in list_exercise_types()]


@router.get("/results", response_model=list[ExerciseResultResponse])
async def get_my_results(
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return [ExerciseResultResponse.model_validate(r) for r in await list_exercise_results(db, user.id, limit)]


@router.get("", response_model=list[ExerciseSummary])
async def get_exercises(
    type: str | None = Query(None),  # noqa: A002
    difficulty_id: int | None = None,
    content_item_id: int | None = None,
    db: AsyncSession = Depends(get_session),
):
    if type is not None and type not in {t.value for t in ExerciseType}:
        raise HTTPException(status_code=400, detail=f"Unknown exercise type: {type}")
    exercises = await list_exercises(db, type, difficulty_id, content_item_id)
    return [
        ExerciseSummary(
            id=e.id,
            title=e.title,
            description=e.description,
            exercise_type=e.exercise_type,
            content_item_id=e.content_item_id,
            difficulty_id=e.difficulty_id,
            question_count=len(e.questions),
        )
        for e in exercises
    ]


@router.get("/{exercise_id}", response_model=ExerciseDetail)
async def get_exercise_detail(exercise_id: int, db: AsyncSession = Depends(get_session)):
    """Exercise without answer flags. Matching definitions come back shuffled."""
    return ExerciseDetail(**present_exercise(await get_exercise(db, exercise_id)))


@router.post("/{exercise_id}/submit", response_model=ExerciseSubmissionResponse)
async def submit(
    exercise_id: int,
    body: SubmitExerciseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_redis_optional),
):
    """Score an attempt, award points and evaluate achievements."""
    result = await submit_exercise(db, redis, user.id, exercise_id, body.answers)
    await db.commit()
    return ExerciseSubmissionResponse(
        result_id=result.result_id,
        exercise_id=result.exercise_id,
        score=result.score,
        total=result.total,
        percentage=round(result.score / result.total * 100, 1) if result.total else 0.0,
        is_perfect=result.is_perfect,
        points_awarded=result.points_awarded,
        achievements=result.achievements,
    )
