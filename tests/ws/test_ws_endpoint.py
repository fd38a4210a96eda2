"""WebSocket endpoint: authentication and the subscribe protocol."""

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from elp.auth.jwt import create_access_token, create_refresh_token
from elp.main import create_app
from elp.ws.manager import manager


@pytest.fixture
def ws_client():
    # No lifespan: the endpoint itself needs neither the database nor Redis.
    return TestClient(create_app())


class TestWebSocketEndpoint:
    def test_rejects_invalid_token(self, ws_client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect("/ws?token=garbage") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4001

    def test_rejects_refresh_token(self, ws_client):
        token = create_refresh_token(1, "a@example.com", token_id="x")
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect(f"/ws?token={token}") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4001

    def test_subscribe_ping_and_errors(self, ws_client):
        token = create_access_token(1, "a@example.com")
        with ws_client.websocket_connect(f"/ws?token={token}") as ws:
            ws.send_json({"action": "subscribe", "channel": "gamification"})
            assert ws.receive_json() == {"type": "subscribed", "channel": "gamification"}

            ws.send_json({"action": "subscribe", "channel": "leaderboard"})
            assert ws.receive_json()["type"] == "error"

            ws.send_json({"action": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

            ws.send_json({"action": "unsubscribe", "channel": "gamification"})
            assert ws.receive_json() == {"type": "unsubscribed", "channel": "gamification"}

        assert manager.user_connection_count(1) == 0
