"""Vocabulary catalog: categories, difficulty tiers, content items, word lists, bookmarks.

All catalog reads go through ``retry_read`` so a dropped pooled connection
costs one retry instead of a 500.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from elp.database import retry_read
from elp.db.models import (
    Bookmark,
    Category,
    ContentItem,
    DifficultyLevel,
    WordList,
    WordListItem,
)
from elp.db.upsert import insert_for
from elp.errors import NotFoundError

logger = logging.getLogger(__name__)


async def list_categories(db: AsyncSession) -> list[Category]:
    async def _read() -> list[Category]:
        result = await db.execute(select(Category).order_by(Category.title))
        return list(result.scalars().all())

    return await retry_read(_read)


async def list_difficulty_levels(db: AsyncSession) -> list[DifficultyLevel]:
    async def _read() -> list[DifficultyLevel]:
        result = await db.execute(select(DifficultyLevel).order_by(DifficultyLevel.sort_order, DifficultyLevel.id))
        return list(result.scalars().all())

    return await retry_read(_read)


async def list_content(
    db: AsyncSession,
    category_id: int | None = None,
    difficulty_id: int | None = None,
    search: str | None = None,
    limit: int = 50,
) -> list[ContentItem]:
    """Content items, optionally filtered. ``search`` is a case-insensitive substring of the word."""
    stmt = select(ContentItem).order_by(ContentItem.word, ContentItem.id).limit(limit)
    if category_id is not None:
        stmt = stmt.where(ContentItem.category_id == category_id)
    if difficulty_id is not None:
        stmt = stmt.where(ContentItem.difficulty_id == difficulty_id)
    if search:
        stmt = stmt.where(ContentItem.word.ilike(f"%{search.strip()}%"))

    async def _read() -> list[ContentItem]:
        result = await db.execute(stmt)
        return list(result.scalars().all())

    return await retry_read(_read)


async def get_content_item(db: AsyncSession, content_item_id: int) -> ContentItem:
    """A content item with its examples and related words."""
    item = await retry_read(lambda: db.get(ContentItem, content_item_id))
    if item is None:
        raise NotFoundError("Content item", content_item_id)
    return item


async def get_random_content_item(db: AsyncSession, category_id: int | None = None) -> ContentItem:
    stmt = select(ContentItem).order_by(func.random()).limit(1)
    if category_id is not None:
        stmt = stmt.where(ContentItem.category_id == category_id)

    async def _read() -> ContentItem | None:
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    item = await retry_read(_read)
    if item is None:
        raise NotFoundError("Content item")
    return item


# --- Word lists ---


async def list_word_lists(db: AsyncSession, difficulty_id: int | None = None) -> list[tuple[WordList, int]]:
    """Word lists with their item counts."""
    stmt = (
        select(WordList, func.count(WordListItem.id))
        .join(WordListItem, WordListItem.word_list_id == WordList.id, isouter=True)
        .group_by(WordList.id)
        .order_by(WordList.id)
    )
    if difficulty_id is not None:
        stmt = stmt.where(WordList.difficulty_id == difficulty_id)

    async def _read() -> list[tuple[WordList, int]]:
        result = await db.execute(stmt)
        return [(row[0], row[1]) for row in result]

    return await retry_read(_read)


async def get_word_list(db: AsyncSession, word_list_id: int) -> tuple[WordList, list[ContentItem]]:
    word_list = await db.get(WordList, word_list_id)
    if word_list is None:
        raise NotFoundError("Word list", word_list_id)
    result = await db.execute(
        select(ContentItem)
        .join(WordListItem, WordListItem.content_item_id == ContentItem.id)
        .where(WordListItem.word_list_id == word_list_id)
        .order_by(WordListItem.id)
    )
    return word_list, list(result.scalars().all())


# --- Bookmarks ---


async def list_bookmarks(db: AsyncSession, user_id: int) -> list[tuple[Bookmark, ContentItem]]:
    result = await db.execute(
        select(Bookmark, ContentItem)
        .join(ContentItem, Bookmark.content_item_id == ContentItem.id)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
    )
    return [(row.Bookmark, row.ContentItem) for row in result]


async def is_bookmarked(db: AsyncSession, user_id: int, content_item_id: int) -> bool:
    result = await db.execute(
        select(Bookmark.id).where(Bookmark.user_id == user_id, Bookmark.content_item_id == content_item_id)
    )
    return result.scalar_one_or_none() is not None


async def toggle_bookmark(db: AsyncSession, user_id: int, content_item_id: int) -> bool:
    """Flip the bookmark state. Returns True when the item is now bookmarked."""
    if await db.get(ContentItem, content_item_id) is None:
        raise NotFoundError("Content item", content_item_id)

    removed = await db.execute(
        delete(Bookmark).where(Bookmark.user_id == user_id, Bookmark.content_item_id == content_item_id)
    )
    if removed.rowcount:
        await db.flush()
        return False

    stmt = (
        insert_for(db, Bookmark)
        .values(user_id=user_id, content_item_id=content_item_id)
        .on_conflict_do_nothing(index_elements=["user_id", "content_item_id"])
    )
    await db.execute(stmt)
    await db.flush()
    logger.debug("User %d bookmarked item %d", user_id, content_item_id)
    return True
