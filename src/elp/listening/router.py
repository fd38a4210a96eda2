"""Listening API endpoints: stories and dialogues."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from elp.database import get_session
from elp.listening.schemas import ListeningDetail, ListeningSummary
from elp.listening.service import get_dialogue, get_story, list_dialogues, list_stories

router = APIRouter(prefix="/api/v1", tags=["Listening"])


@router.get("/stories", response_model=list[ListeningSummary])
async def get_stories(difficulty_id: int | None = None, db: AsyncSession = Depends(get_session)):
    return [ListeningSummary.model_validate(s) for s in await list_stories(db, difficulty_id)]


@router.get("/stories/{story_id}", response_model=ListeningDetail)
async def get_story_detail(story_id: int, db: AsyncSession = Depends(get_session)):
    return ListeningDetail.model_validate(await get_story(db, story_id))


@router.get("/dialogues", response_model=list[ListeningSummary])
async def get_dialogues(difficulty_id: int | None = None, db: AsyncSession = Depends(get_session)):
    return [ListeningSummary.model_validate(d) for d in await list_dialogues(db, difficulty_id)]


@router.get("/dialogues/{dialogue_id}", response_model=ListeningDetail)
async def get_dialogue_detail(dialogue_id: int, db: AsyncSession = Depends(get_session)):
    return ListeningDetail.model_validate(await get_dialogue(db, dialogue_id))
