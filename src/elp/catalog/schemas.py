"""Pydantic schemas for catalog endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CategoryResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    icon: str | None = None
    color: str | None = None

    model_config = {"from_attributes": True}


class DifficultyLevelResponse(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = {"from_attributes": True}


class ExampleResponse(BaseModel):
    id: int
    text: str
    translation: str | None = None

    model_config = {"from_attributes": True}


class RelatedWordResponse(BaseModel):
    id: int
    word: str
    part_of_speech: str | None = None

    model_config = {"from_attributes": True}


class ContentItemResponse(BaseModel):
    id: int
    word: str
    definition: str
    phonetic: str | None = None
    part_of_speech: str | None = None
    audio_url: str | None = None
    image_url: str | None = None
    category_id: int
    difficulty_id: int | None = None

    model_config = {"from_attributes": True}


class ContentItemDetailResponse(ContentItemResponse):
    examples: list[ExampleResponse] = []
    related_words: list[RelatedWordResponse] = []


class ContentListResponse(BaseModel):
    items: list[ContentItemResponse]
    total: int


class WordListResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    difficulty_id: int | None = None
    item_count: int = 0


class WordListDetailResponse(WordListResponse):
    items: list[ContentItemResponse] = []


class BookmarkResponse(BaseModel):
    id: int
    created_at: datetime
    item: ContentItemResponse


class BookmarkStateResponse(BaseModel):
    content_item_id: int
    bookmarked: bool
