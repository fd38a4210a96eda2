"""Publish events over Redis pub/sub for WebSocket delivery."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from elp.db.models import Notification

logger = logging.getLogger(__name__)


def user_channel(user_id: int) -> str:
    return f"ws:user:{user_id}"


async def publish_event(redis: object | None, channel: str, payload: dict[str, Any]) -> bool:
    """Publish a JSON payload. Failures are logged, never raised.

    Returns True when the message was handed to Redis.
    """
    if redis is None:
        return False
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish to %s", channel, exc_info=True)
        return False
    return True


async def push_notification_to_user(redis: object | None, notification: Notification) -> bool:
    """Publish a formatted notification to ``ws:user:{user_id}``.

    The notification must already be flushed (have an ``id``). The bridge
    pattern-subscribes to ``ws:user:*`` and routes the message to all of the
    user's active WebSocket connections.
    """
    ws_payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "kind": notification.kind,
            "category": notification.category,
            "title": notification.title,
            "message": notification.message,
            "timestamp": notification.created_at.isoformat() if notification.created_at else None,
            "read": False,
            "actionUrl": notification.action_url,
        },
    }
    return await publish_event(redis, user_channel(notification.user_id), ws_payload)
