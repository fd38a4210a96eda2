"""Bridges Redis pub/sub to WebSocket clients.

Service events (``pubsub:*``) carry a ``user_id`` and are delivered to that
user's sockets subscribed to the mapped channel. Per-user messages on
``ws:user:{id}`` (toasts, auth state) go to every socket of the user.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
import structlog
from redis.asyncio.client import PubSub

from elp.ws.manager import ConnectionManager, manager

logger = structlog.get_logger()

# Redis pub/sub channel -> WebSocket channel
CHANNEL_MAP: dict[str, str] = {
    "pubsub:points_updated": "gamification",
    "pubsub:level_up": "gamification",
    "pubsub:streak_update": "gamification",
    "pubsub:achievement_unlocked": "gamification",
    "pubsub:progress_updated": "progress",
}

USER_PATTERN = "ws:user:*"


@asynccontextmanager
async def subscription(redis_client: aioredis.Redis) -> AsyncIterator[PubSub]:
    """Subscribe to the bridge channels; always unsubscribes and closes on exit."""
    pubsub = redis_client.pubsub()
    await pubsub.subscribe(*CHANNEL_MAP.keys())
    await pubsub.psubscribe(USER_PATTERN)
    try:
        yield pubsub
    finally:
        await pubsub.unsubscribe()
        await pubsub.punsubscribe()
        await pubsub.aclose()


class PubSubBridge:
    """Subscribes to Redis pub/sub and pushes messages to WebSocket clients."""

    def __init__(self, redis_client: aioredis.Redis, connections: ConnectionManager = manager) -> None:
        self.redis = redis_client
        self.connections = connections
        self._running = False

    async def start(self) -> None:
        self._running = True
        async with subscription(self.redis) as pubsub:
            logger.info("pubsub_bridge_started", channels=list(CHANNEL_MAP), patterns=[USER_PATTERN])
            try:
                while self._running:
                    message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                    if message is not None:
                        await self.dispatch(message)
            except asyncio.CancelledError:
                pass
            finally:
                logger.info("pubsub_bridge_stopped")

    async def stop(self) -> None:
        """Signal the bridge to stop."""
        self._running = False

    async def dispatch(self, message: dict) -> int:
        """Route one pub/sub message. Returns the number of sockets reached."""
        msg_type = message.get("type", "")
        redis_channel = message.get("channel", "")
        if isinstance(redis_channel, bytes):
            redis_channel = redis_channel.decode()

        try:
            data = message.get("data", b"")
            if isinstance(data, bytes):
                data = data.decode()
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
            logger.warning("pubsub_invalid_message", channel=redis_channel)
            return 0

        if msg_type == "pmessage" and redis_channel.startswith("ws:user:"):
            try:
                user_id = int(redis_channel.rsplit(":", 1)[-1])
            except ValueError:
                logger.warning("pubsub_invalid_user_id", channel=redis_channel)
                return 0
            sent = await self.connections.send_to_user_direct(user_id, {
                "type": payload.get("event", "notification"),
                "payload": payload.get("data", payload),
            })
            if sent:
                logger.debug("user_message_sent", user_id=user_id, recipients=sent)
            return sent

        ws_channel = CHANNEL_MAP.get(redis_channel)
        if ws_channel is None:
            return 0

        event = {"type": redis_channel.split(":", 1)[-1], **payload}
        user_id = payload.get("user_id")
        if user_id is None:
            return await self.connections.broadcast_to_channel(ws_channel, event)
        return await self.connections.send_to_user(int(user_id), ws_channel, event)
