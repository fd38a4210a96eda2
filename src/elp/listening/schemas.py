"""Pydantic schemas for listening endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class ListeningSummary(BaseModel):
    id: int
    title: str
    description: str | None = None
    audio_url: str | None = None
    image_url: str | None = None
    difficulty_id: int | None = None
    duration: int | None = None

    model_config = {"from_attributes": True}


class ListeningDetail(ListeningSummary):
    content: str
