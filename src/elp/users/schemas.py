"""Request schemas for profile endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(None, max_length=128)
    avatar_url: str | None = Field(None, max_length=512)
