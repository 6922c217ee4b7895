"""WebSocket endpoint for real-time delivery.

Frames in both directions are JSON objects ``{"event": <name>, "data": ...}``.

Client -> server events:

- ``join_user``    (data: user id) -- subscribe this connection to a user's channel
- ``leave_user``   (data: user id)
- ``typing_start`` / ``typing_stop`` (data: ``{"receiverId": ...}``)
- ``pong``         -- heartbeat answer

Server -> client events are the ones in :mod:`parley.messaging.events`.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from parley.db.models import User
from parley.messaging.events import ERROR, WELCOME, user_typing_event
from parley.server.auth import verify_token_ws
from parley.server.connections import Channel, PresenceRegistry
from parley.server.heartbeat import HeartbeatManager

logger = logging.getLogger(__name__)

router = APIRouter()


async def _send_error(registry: PresenceRegistry, channel: Channel, code: str, detail: str) -> None:
    await registry.send_to_channel(channel, ERROR, {"error": code, "message": detail})


def _room_from(data: Any) -> str | None:
    if isinstance(data, dict):
        data = data.get("userId")
    if isinstance(data, (str, int)) and str(data):
        return str(data)
    return None


async def handle_frame(
    channel: Channel,
    user: User,
    raw: Any,
    registry: PresenceRegistry,
    heartbeat: HeartbeatManager,
) -> None:
    """Apply one inbound frame from an authenticated connection."""
    if not isinstance(raw, dict):
        await _send_error(registry, channel, "invalid_frame", "Frames must be JSON objects")
        return

    event = raw.get("event") or raw.get("type")
    data = raw.get("data")

    if event == "pong":
        heartbeat.record_pong(channel)

    elif event in ("join_user", "leave_user"):
        room = _room_from(data)
        if room is None:
            await _send_error(registry, channel, "validation_error", "User ID is required")
        elif room != user.id:
            await _send_error(registry, channel, "forbidden", "Cannot join another user's room")
        elif event == "join_user":
            await registry.join(channel, room)
        else:
            await registry.leave(channel, room)

    elif event in ("typing_start", "typing_stop"):
        receiver_id = data.get("receiverId") if isinstance(data, dict) else None
        if not receiver_id:
            await _send_error(registry, channel, "validation_error", "Receiver ID is required")
            return
        typing = user_typing_event(user.id, user.name, str(receiver_id), event == "typing_start")
        await registry.broadcast_to_user(
            typing.recipient, typing.name, typing.payload, exclude=channel
        )

    else:
        logger.warning("Unknown event from %s: %s", channel.id, event)
        await _send_error(
            registry, channel, "unknown_message_type", f"Unrecognized event: {event}"
        )


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    """Live channel for one device.

    Auth flow: resolve the token BEFORE accepting.  Never accept
    unauthenticated connections.
    """
    registry: PresenceRegistry | None = websocket.app.state.registry
    heartbeat: HeartbeatManager | None = websocket.app.state.heartbeat
    if registry is None or heartbeat is None:
        await websocket.close(code=1013, reason="real-time delivery disabled")
        return

    user = await verify_token_ws(token)
    if user is None:
        await websocket.close(code=1008, reason="invalid token")
        return

    await websocket.accept()
    channel = Channel(websocket)
    await registry.register(channel)
    heartbeat.record_connect(channel)
    await registry.send_to_channel(
        channel,
        WELCOME,
        {
            "message": "Connected to server successfully!",
            "socketId": channel.id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )

    try:
        while True:
            text = await websocket.receive_text()
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                await _send_error(registry, channel, "invalid_frame", "Frames must be valid JSON")
                continue
            await handle_frame(channel, user, raw, registry, heartbeat)

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: %s (%s)", channel.id, user.id)
    except Exception:
        logger.exception("WebSocket error for %s", channel.id)
    finally:
        heartbeat.record_disconnect(channel)
        await registry.disconnect(channel)
