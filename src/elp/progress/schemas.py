"""Pydantic schemas for progress endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from elp.catalog.schemas import ContentItemResponse


class ProgressEntry(BaseModel):
    content_item_id: int
    mastery_level: int
    last_practiced: datetime | None = None
    item: ContentItemResponse


class ProgressListResponse(BaseModel):
    progress: list[ProgressEntry]
    total: int


class MarkLearnedResponse(BaseModel):
    content_item_id: int
    mastery_level: int
    previous_level: int
    points_awarded: int
    achievements: list[str] = []


class RecentActivity(BaseModel):
    date: str
    activity: str
    score: int


class MasteryLevels(BaseModel):
    beginner: int = 0
    intermediate: int = 0
    advanced: int = 0


class StatisticsResponse(BaseModel):
    total_words: int
    total_exercises: int
    streak_days: int
    mastery_levels: MasteryLevels
    recent_activity: list[RecentActivity]


class RecommendedItem(BaseModel):
    id: int
    title: str
    description: str
    type: str
    difficulty: str
    category: str
