"""Catalog API endpoints: categories, difficulty tiers, content, word lists, bookmarks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.catalog.schemas import (
    BookmarkResponse,
    BookmarkStateResponse,
    CategoryResponse,
    ContentItemDetailResponse,
    ContentItemResponse,
    ContentListResponse,
    DifficultyLevelResponse,
    WordListDetailResponse,
    WordListResponse,
)
from elp.catalog.service import (
    get_content_item,
    get_random_content_item,
    get_word_list,
    is_bookmarked,
    list_bookmarks,
    list_categories,
    list_content,
    list_difficulty_levels,
    list_word_lists,
    toggle_bookmark,
)
from elp.config import get_settings
from elp.database import get_session
from elp.db.models import User

router = APIRouter(prefix="/api/v1", tags=["Catalog"])


@router.get("/categories", response_model=list[CategoryResponse])
async def get_categories(db: AsyncSession = Depends(get_session)):
    return [CategoryResponse.model_validate(c) for c in await list_categories(db)]


@router.get("/difficulty-levels", response_model=list[DifficultyLevelResponse])
async def get_difficulty_levels(db: AsyncSession = Depends(get_session)):
    return [DifficultyLevelResponse.model_validate(d) for d in await list_difficulty_levels(db)]


@router.get("/content", response_model=ContentListResponse)
async def get_content(
    category_id: int | None = None,
    difficulty_id: int | None = None,
    search: str | None = Query(None, max_length=128),
    limit: int | None = Query(None, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
):
    """Browse vocabulary. ``search`` matches a substring of the word, case-insensitively."""
    items = await list_content(
        db,
        category_id=category_id,
        difficulty_id=difficulty_id,
        search=search,
        limit=limit or get_settings().content_default_limit,
    )
    return ContentListResponse(
        items=[ContentItemResponse.model_validate(i) for i in items],
        total=len(items),
    )


# Declared before /content/{content_item_id} so "random" is not parsed as an id
@router.get("/content/random", response_model=ContentItemDetailResponse)
async def get_random_content(
    category_id: int | None = None,
    db: AsyncSession = Depends(get_session),
):
    """Word of the day."""
    return ContentItemDetailResponse.model_validate(await get_random_content_item(db, category_id))


@router.get("/content/{content_item_id}", response_model=ContentItemDetailResponse)
async def get_content_detail(content_item_id: int, db: AsyncSession = Depends(get_session)):
    return ContentItemDetailResponse.model_validate(await get_content_item(db, content_item_id))


@router.get("/word-lists", response_model=list[WordListResponse])
async def get_word_lists(
    difficulty_id: int | None = None,
    db: AsyncSession = Depends(get_session),
):
    return [
        WordListResponse(
            id=wl.id,
            title=wl.title,
            description=wl.description,
            difficulty_id=wl.difficulty_id,
            item_count=count,
        )
        for wl, count in await list_word_lists(db, difficulty_id)
    ]


@router.get("/word-lists/{word_list_id}", response_model=WordListDetailResponse)
async def get_word_list_detail(word_list_id: int, db: AsyncSession = Depends(get_session)):
    word_list, items = await get_word_list(db, word_list_id)
    return WordListDetailResponse(
        id=word_list.id,
        title=word_list.title,
        description=word_list.description,
        difficulty_id=word_list.difficulty_id,
        item_count=len(items),
        items=[ContentItemResponse.model_validate(i) for i in items],
    )


# ── Bookmarks ──


@router.get("/bookmarks", response_model=list[BookmarkResponse])
async def get_bookmarks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return [
        BookmarkResponse(id=b.id, created_at=b.created_at, item=ContentItemResponse.model_validate(item))
        for b, item in await list_bookmarks(db, user.id)
    ]


@router.post("/bookmarks/{content_item_id}/toggle", response_model=BookmarkStateResponse)
async def toggle_bookmark_endpoint(
    content_item_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    bookmarked = await toggle_bookmark(db, user.id, content_item_id)
    await db.commit()
    return BookmarkStateResponse(content_item_id=content_item_id, bookmarked=bookmarked)


@router.get("/bookmarks/{content_item_id}", response_model=BookmarkStateResponse)
async def get_bookmark_state(
    content_item_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return BookmarkStateResponse(
        content_item_id=content_item_id,
        bookmarked=await is_bookmarked(db, user.id, content_item_id),
    )
