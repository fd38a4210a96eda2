"""WebSocket endpoint with JWT authentication and channel multiplexing."""

import json

import jwt
import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from elp.auth.jwt import verify_token
from elp.ws.manager import TooManyConnectionsError, manager

logger = structlog.get_logger()

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    """Single WebSocket endpoint with JWT authentication and channel multiplexing.

    Protocol:
        Client -> Server:
            {"action": "subscribe", "channel": "gamification"}
            {"action": "unsubscribe", "channel": "gamification"}
            {"action": "ping"}

        Server -> Client:
            {"channel": "gamification", "data": {...}}
            {"type": "notification", "payload": {...}}
            {"type": "pong"}
            {"type": "error", "message": "..."}
            {"type": "subscribed", "channel": "gamification"}
            {"type": "unsubscribed", "channel": "gamification"}
    """
    try:
        payload = verify_token(token, expected_type="access")
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        await websocket.close(code=4001, reason=f"Authentication failed: {e}")
        return

    try:
        async with manager.connection(websocket, user_id) as conn_id:
            await _serve(websocket, conn_id)
    except TooManyConnectionsError:
        await websocket.close(code=4008, reason="Too many connections")
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("ws_error", user_id=user_id)


async def _serve(websocket: WebSocket, conn_id: str) -> None:
    while True:
        raw = await websocket.receive_text()
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            await websocket.send_json({"type": "error", "message": "Invalid JSON"})
            continue

        action = msg.get("action") if isinstance(msg, dict) else None
        channel = msg.get("channel", "") if isinstance(msg, dict) else ""

        if action == "subscribe":
            if await manager.subscribe(conn_id, channel):
                await websocket.send_json({"type": "subscribed", "channel": channel})
            else:
                await websocket.send_json({"type": "error", "message": f"Invalid channel: {channel}"})
        elif action == "unsubscribe":
            await manager.unsubscribe(conn_id, channel)
            await websocket.send_json({"type": "unsubscribed", "channel": channel})
        elif action == "ping":
            await websocket.send_json({"type": "pong"})
        else:
            await websocket.send_json({"type": "error", "message": f"Unknown action: {action}"})
