"""Pydantic schemas for exam endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ExamSummary(BaseModel):
    id: int
    title: str
    description: str | None = None
    time_limit: int
    difficulty_id: int | None = None
    question_count: int = 0


class ExamOptionView(BaseModel):
    id: int
    text: str


class ExamQuestionView(BaseModel):
    id: int
    prompt: str
    question_type: str
    points: int
    options: list[ExamOptionView] = []


class ExamDetail(BaseModel):
    id: int
    title: str
    description: str | None = None
    time_limit: int
    difficulty_id: int | None = None
    total_points: int
    questions: list[ExamQuestionView]


class AttemptResponse(BaseModel):
    exam_id: int
    started_at: datetime
    time_limit_seconds: int
    remaining_seconds: int
    answers: dict[str, Any] = {}


class RecordAnswersRequest(BaseModel):
    """Answers keyed by question id; merged into the active attempt."""

    answers: dict[str, Any] = Field(default_factory=dict)


class ExamSubmissionResponse(BaseModel):
    result_id: int
    exam_id: int
    score: int
    total: int
    percentage: float
    time_taken: int
    auto_submitted: bool
    points_awarded: int
    achievements: list[str] = []


class ExamResultResponse(BaseModel):
    id: int
    exam_id: int
    score: int
    total_points: int
    time_taken: int
    auto_submitted: bool
    completed_at: datetime

    model_config = {"from_attributes": True}
