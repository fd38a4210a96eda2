"""Toasts and the notification inbox.

Every toast raised by a learning action is kept as a ``Notification`` row so
a learner who was offline still sees it, then pushed to any open sockets
through Redis (see ``elp.notifications.push``).
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy import ColumnElement, and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import Notification, utcnow
from elp.notifications.push import push_notification_to_user

logger = logging.getLogger(__name__)


class ToastKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


CATEGORIES = frozenset({"gamification", "progress", "exercise", "exam", "auth", "system"})

DEFAULT_TITLES = {
    ToastKind.SUCCESS: "Success",
    ToastKind.ERROR: "Something went wrong",
    ToastKind.INFO: "Heads up",
}


async def push_toast(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    kind: ToastKind | str,
    message: str,
    *,
    category: str = "system",
    title: str | None = None,
    action_url: str | None = None,
) -> Notification:
    """Store a ``(kind, message)`` toast for the user and push it to their sockets."""
    kind = ToastKind(kind)
    if category not in CATEGORIES:
        raise ValueError(f"Unknown toast category {category!r}")

    notification = Notification(
        user_id=user_id,
        kind=kind.value,
        category=category,
        title=title or DEFAULT_TITLES[kind],
        message=message,
        action_url=action_url,
        created_at=utcnow(),
    )
    db.add(notification)
    await db.flush()
    logger.debug("Toast %s for user %d: %s", kind.value, user_id, message)

    await push_notification_to_user(redis, notification)
    return notification


def _inbox(user_id: int, unread_only: bool = False) -> ColumnElement[bool]:
    clause = Notification.user_id == user_id
    if unread_only:
        clause = and_(clause, Notification.read.is_(False))
    return clause


async def list_notifications(
    db: AsyncSession,
    user_id: int,
    *,
    unread_only: bool = False,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    """Newest-first page of the inbox plus the size of the whole (filtered) inbox."""
    where = _inbox(user_id, unread_only)
    total = (await db.execute(select(func.count(Notification.id)).where(where))).scalar_one()
    rows = await db.scalars(
        select(Notification)
        .where(where)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(rows), total


async def count_unread(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(Notification.id)).where(_inbox(user_id, unread_only=True)))
    return result.scalar_one()


async def mark_read(db: AsyncSession, user_id: int, notification_id: int) -> Notification | None:
    """Flag one of the user's notifications as read; ``None`` if it is not theirs."""
    notification = await db.scalar(
        select(Notification).where(_inbox(user_id), Notification.id == notification_id)
    )
    if notification is not None and not notification.read:
        notification.read = True
        await db.flush()
    return notification


async def mark_all_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification).where(_inbox(user_id, unread_only=True)).values(read=True)
    )
    await db.flush()
    return result.rowcount
