"""Tests for the Redis pub/sub to WebSocket bridge."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from elp.ws.bridge import CHANNEL_MAP, PubSubBridge
from elp.ws.manager import VALID_CHANNELS


def _connections() -> MagicMock:
    connections = MagicMock()
    connections.broadcast_to_channel = AsyncMock(return_value=1)
    connections.send_to_user = AsyncMock(return_value=1)
    connections.send_to_user_direct = AsyncMock(return_value=1)
    return connections


class TestChannelMapping:
    def test_all_redis_channels_mapped(self):
        for redis_ch, ws_ch in CHANNEL_MAP.items():
            assert ws_ch in VALID_CHANNELS, f"{redis_ch} maps to unknown {ws_ch}"

    def test_gamification_channels(self):
        for name in ("points_updated", "level_up", "streak_update", "achievement_unlocked"):
            assert CHANNEL_MAP[f"pubsub:{name}"] == "gamification"

    def test_progress_channel(self):
        assert CHANNEL_MAP["pubsub:progress_updated"] == "progress"


class TestDispatch:
    @pytest.mark.asyncio
    async def test_user_event_goes_to_that_user_only(self):
        connections = _connections()
        bridge = PubSubBridge(MagicMock(), connections=connections)
        await bridge.dispatch({
            "type": "message",
            "channel": "pubsub:level_up",
            "data": json.dumps({"user_id": 5, "old_level": 1, "new_level": 2}),
        })
        connections.send_to_user.assert_awaited_once_with(
            5, "gamification", {"type": "level_up", "user_id": 5, "old_level": 1, "new_level": 2},
        )
        connections.broadcast_to_channel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_event_without_user_is_broadcast(self):
        connections = _connections()
        bridge = PubSubBridge(MagicMock(), connections=connections)
        await bridge.dispatch({"type": "message", "channel": "pubsub:progress_updated", "data": "{}"})
        connections.broadcast_to_channel.assert_awaited_once_with("progress", {"type": "progress_updated"})

    @pytest.mark.asyncio
    async def test_user_channel_message_is_direct(self):
        connections = _connections()
        bridge = PubSubBridge(MagicMock(), connections=connections)
        payload = {"event": "notification", "data": {"id": "3", "message": "hi"}}
        await bridge.dispatch({"type": "pmessage", "channel": b"ws:user:9", "data": json.dumps(payload).encode()})
        connections.send_to_user_direct.assert_awaited_once_with(
            9, {"type": "notification", "payload": {"id": "3", "message": "hi"}},
        )

    @pytest.mark.asyncio
    async def test_invalid_json_dropped(self):
        connections = _connections()
        bridge = PubSubBridge(MagicMock(), connections=connections)
        assert await bridge.dispatch({"type": "message", "channel": "pubsub:level_up", "data": "{nope"}) == 0
        connections.send_to_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_channel_ignored(self):
        connections = _connections()
        bridge = PubSubBridge(MagicMock(), connections=connections)
        assert await bridge.dispatch({"type": "message", "channel": "pubsub:other", "data": "{}"}) == 0

    @pytest.mark.asyncio
    async def test_bad_user_id_in_channel(self):
        connections = _connections()
        bridge = PubSubBridge(MagicMock(), connections=connections)
        assert await bridge.dispatch({"type": "pmessage", "channel": "ws:user:abc", "data": "{}"}) == 0


class TestBridgeLifecycle:
    @pytest.mark.asyncio
    async def test_bridge_forwards_then_stops(self):
        messages = [
            {"type": "message", "channel": "pubsub:streak_update", "data": json.dumps({"user_id": 1})},
            None,
        ]

        async def fake_get_message(**kwargs):
            if messages:
                return messages.pop(0)
            await asyncio.sleep(0.01)
            return None

        mock_pubsub = AsyncMock()
        mock_pubsub.get_message = fake_get_message
        mock_redis = MagicMock()
        mock_redis.pubsub = MagicMock(return_value=mock_pubsub)

        connections = _connections()
        bridge = PubSubBridge(mock_redis, connections=connections)
        task = asyncio.create_task(bridge.start())
        await asyncio.sleep(0.05)
        await bridge.stop()
        await asyncio.wait_for(task, timeout=2)

        connections.send_to_user.assert_awaited_once()
        mock_pubsub.subscribe.assert_awaited_once()
        mock_pubsub.psubscribe.assert_awaited_once_with("ws:user:*")
        mock_pubsub.aclose.assert_awaited_once()
