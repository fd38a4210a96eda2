"""Listening materials: stories and dialogues."""

from __future__ import annotations

from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.database import retry_read
from elp.db.models import Dialogue, Story
from elp.errors import NotFoundError

M = TypeVar("M", Story, Dialogue)


async def _list(db: AsyncSession, model: type[M], difficulty_id: int | None) -> list[M]:
    stmt = select(model).order_by(model.id)
    if difficulty_id is not None:
        stmt = stmt.where(model.difficulty_id == difficulty_id)

    async def _read() -> list[M]:
        result = await db.execute(stmt)
        return list(result.scalars().all())

    return await retry_read(_read)


async def list_stories(db: AsyncSession, difficulty_id: int | None = None) -> list[Story]:
    return await _list(db, Story, difficulty_id)


async def list_dialogues(db: AsyncSession, difficulty_id: int | None = None) -> list[Dialogue]:
    return await _list(db, Dialogue, difficulty_id)


async def get_story(db: AsyncSession, story_id: int) -> Story:
    story = await retry_read(lambda: db.get(Story, story_id))
    if story is None:
        raise NotFoundError("Story", story_id)
    return story


async def get_dialogue(db: AsyncSession, dialogue_id: int) -> Dialogue:
    dialogue = await retry_read(lambda: db.get(Dialogue, dialogue_id))
    if dialogue is None:
        raise NotFoundError("Dialogue", dialogue_id)
    return dialogue
