"""WebSocket connection manager.

Tracks active WebSocket connections and their channel subscriptions and fans
messages out to them.
"""

import json
import time
import uuid
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()

VALID_CHANNELS = {"gamification", "progress", "notifications"}


class TooManyConnectionsError(Exception):
    """The user already has the maximum number of open sockets."""


@dataclass
class ClientConnection:
    websocket: WebSocket
    user_id: int
    subscriptions: set[str] = field(default_factory=set)
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


class ConnectionManager:
    """Manages all active WebSocket connections.

    Safe for asyncio via the single-threaded event loop.
    """

    def __init__(self, max_connections_per_user: int = 5) -> None:
        self.max_connections_per_user = max_connections_per_user
        self._connections: dict[str, ClientConnection] = {}  # conn_id -> client
        self._channels: dict[str, set[str]] = defaultdict(set)  # channel -> {conn_ids}
        self._user_connections: dict[int, set[str]] = defaultdict(set)  # user_id -> {conn_ids}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def user_connection_count(self, user_id: int) -> int:
        return len(self._user_connections.get(user_id, ()))

    async def connect(self, websocket: WebSocket, conn_id: str, user_id: int) -> None:
        """Accept a new WebSocket connection."""
        if self.user_connection_count(user_id) >= self.max_connections_per_user:
            raise TooManyConnectionsError(user_id)
        await websocket.accept()
        self._connections[conn_id] = ClientConnection(websocket=websocket, user_id=user_id)
        self._user_connections[user_id].add(conn_id)
        logger.info("ws_connected", conn_id=conn_id, user_id=user_id)

    async def disconnect(self, conn_id: str) -> None:
        """Remove a connection and all of its subscriptions."""
        client = self._connections.pop(conn_id, None)
        if client is None:
            return

        for channel in client.subscriptions:
            self._channels[channel].discard(conn_id)

        self._user_connections[client.user_id].discard(conn_id)
        if not self._user_connections[client.user_id]:
            del self._user_connections[client.user_id]

        logger.info("ws_disconnected", conn_id=conn_id, user_id=client.user_id)

    @asynccontextmanager
    async def connection(self, websocket: WebSocket, user_id: int) -> AsyncIterator[str]:
        """Scoped connection: subscriptions are dropped however the socket ends."""
        conn_id = str(uuid.uuid4())
        await self.connect(websocket, conn_id, user_id)
        try:
            yield conn_id
        finally:
            await self.disconnect(conn_id)

    async def subscribe(self, conn_id: str, channel: str) -> bool:
        """Subscribe a connection to a channel. Returns False if invalid."""
        client = self._connections.get(conn_id)
        if client is None or channel not in VALID_CHANNELS:
            return False

        client.subscriptions.add(channel)
        self._channels[channel].add(conn_id)
        logger.debug("ws_subscribed", conn_id=conn_id, channel=channel)
        return True

    async def unsubscribe(self, conn_id: str, channel: str) -> bool:
        client = self._connections.get(conn_id)
        if client is None:
            return False

        client.subscriptions.discard(channel)
        self._channels[channel].discard(conn_id)
        return True

    async def _send(self, conn_ids: list[str], payload: str) -> int:
        sent = 0
        failed: list[str] = []
        for conn_id in conn_ids:
            client = self._connections.get(conn_id)
            if client is None:
                continue
            try:
                await client.websocket.send_text(payload)
            except Exception:
                logger.debug("ws_send_failed", conn_id=conn_id, exc_info=True)
                failed.append(conn_id)
                continue
            client.messages_sent += 1
            sent += 1

        for conn_id in failed:
            await self.disconnect(conn_id)
        return sent

    async def broadcast_to_channel(self, channel: str, message: dict) -> int:
        """Send a message to every client subscribed to a channel."""
        conn_ids = list(self._channels.get(channel, set()))
        if not conn_ids:
            return 0
        return await self._send(conn_ids, json.dumps({"channel": channel, "data": message}))

    async def send_to_user(self, user_id: int, channel: str, message: dict) -> int:
        """Send to a user's connections that are subscribed to ``channel``."""
        conn_ids = [
            conn_id
            for conn_id in self._user_connections.get(user_id, set())
            if channel in self._connections[conn_id].subscriptions
        ]
        return await self._send(conn_ids, json.dumps({"channel": channel, "data": message}))

    async def send_to_user_direct(self, user_id: int, message: dict) -> int:
        """Send to every connection of a user regardless of subscriptions."""
        conn_ids = list(self._user_connections.get(user_id, set()))
        return await self._send(conn_ids, json.dumps(message, default=str))

    def get_stats(self) -> dict:
        return {
            "total_connections": len(self._connections),
            "unique_users": len(self._user_connections),
            "channels": {ch: len(conns) for ch, conns in self._channels.items() if conns},
        }


manager = ConnectionManager()
