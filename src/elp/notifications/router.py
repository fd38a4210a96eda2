"""Notification inbox endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.database import get_session
from elp.db.models import User
from elp.errors import NotFoundError
from elp.notifications import service
from elp.notifications.schemas import MarkedRead, NotificationPage, NotificationResponse, UnreadCount

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationPage)
async def inbox(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> NotificationPage:
    rows, total = await service.list_notifications(
        db, user.id, unread_only=unread_only, offset=(page - 1) * per_page, limit=per_page,
    )
    return NotificationPage(
        notifications=[NotificationResponse.model_validate(n) for n in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UnreadCount:
    return UnreadCount(unread_count=await service.count_unread(db, user.id))


@router.post("/read-all", response_model=MarkedRead)
async def read_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MarkedRead:
    marked = await service.mark_all_read(db, user.id)
    await db.commit()
    return MarkedRead(marked=marked)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def read_one(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    notification = await service.mark_read(db, user.id, notification_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    response = NotificationResponse.model_validate(notification)
    await db.commit()
    return response
