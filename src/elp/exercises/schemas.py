"""Pydantic schemas for exercise endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ExerciseTypeResponse(BaseModel):
    slug: str
    name: str


class ExerciseSummary(BaseModel):
    id: int
    title: str
    description: str | None = None
    exercise_type: str
    content_item_id: int | None = None
    difficulty_id: int | None = None
    question_count: int = 0


class OptionView(BaseModel):
    id: int
    text: str


class QuestionView(BaseModel):
    id: int
    prompt: str
    audio_url: str | None = None
    points: int = 1
    options: list[OptionView] = []


class ExerciseDetail(BaseModel):
    id: int
    title: str
    description: str | None = None
    exercise_type: str
    content_item_id: int | None = None
    difficulty_id: int | None = None
    questions: list[QuestionView]
    # Matching only: the shared pool of definitions, shuffled
    definitions: list[OptionView] = []


class SubmitExerciseRequest(BaseModel):
    """Answers keyed by question id.

    Option-based types send the chosen option id (matching: the id of the
    definition paired with the term). Fill-in-blank sends the typed text.
    """

    answers: dict[str, Any] = Field(default_factory=dict)


class ExerciseSubmissionResponse(BaseModel):
    result_id: int
    exercise_id: int
    score: int
    total: int
    percentage: float
    is_perfect: bool
    points_awarded: int
    achievements: list[str] = []


class ExerciseResultResponse(BaseModel):
    id: int
    exercise_id: int
    score: int
    total_questions: int
    completed_at: datetime

    model_config = {"from_attributes": True}
