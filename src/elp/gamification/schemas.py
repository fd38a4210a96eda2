"""Pydantic response models for gamification endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


# --- Points ---


class PointsResponse(BaseModel):
    total_points: int
    level: int
    points_into_level: int
    points_for_level: int
    next_level: int
    next_level_at: int


class PointsHistoryEntry(BaseModel):
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


class PointsHistoryResponse(BaseModel):
    entries: list[PointsHistoryEntry]
    total: int
    page: int
    per_page: int


# --- Streak ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    active_today: bool = False


# --- Achievements ---


class AchievementResponse(BaseModel):
    slug: str
    name: str
    description: str
    points: int
    icon: str | None = None
    trigger_type: str
    threshold: int

    model_config = {"from_attributes": True}


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]


class EarnedAchievementResponse(AchievementResponse):
    earned_at: datetime


class UserAchievementsResponse(BaseModel):
    earned: list[EarnedAchievementResponse]
    total_available: int
    total_earned: int
