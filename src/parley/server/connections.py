"""Presence registry: live WebSocket channels keyed by user id.

A connection starts *connected* with no user; ``join`` adds it to a
user's channel set, ``leave`` removes it, and ``disconnect`` removes it
from every set it belongs to.  A user may have several live connections
(multiple devices); ``broadcast_to_user`` reaches all of them.

All map mutations are protected by an asyncio.Lock.  Sends happen
outside the lock on a snapshot of the target set.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from starlette.websockets import WebSocket

from parley.messaging.errors import TransportUnavailableError
from parley.messaging.events import JOINED_ROOM

logger = logging.getLogger(__name__)


class Channel:
    """One live connection handle."""

    def __init__(self, websocket: WebSocket, channel_id: str | None = None) -> None:
        self.id = channel_id or uuid.uuid4().hex
        self.connected = True
        self._websocket = websocket

    async def send(self, event: str, payload: Any) -> None:
        await self._websocket.send_json({"event": event, "data": payload})

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._websocket.close(code=code, reason=reason)

    def __repr__(self) -> str:
        return f"Channel({self.id})"


class PresenceRegistry:
    """Process-wide map of user id to live channels."""

    def __init__(self) -> None:
        self._by_user: dict[str, set[Channel]] = {}
        self._by_channel: dict[Channel, set[str]] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    async def register(self, channel: Channel) -> None:
        """Track a freshly accepted connection (no user yet)."""
        async with self._lock:
            self._by_channel.setdefault(channel, set())
        logger.info("Channel connected: %s", channel.id)

    async def join(self, channel: Channel, user_id: str) -> None:
        """Add *channel* to *user_id*'s set and acknowledge to that channel only.

        Joining twice is harmless.
        """
        async with self._lock:
            self._by_user.setdefault(user_id, set()).add(channel)
            self._by_channel.setdefault(channel, set()).add(user_id)
        logger.info("Channel %s joined user room %s", channel.id, user_id)
        await self.send_to_channel(
            channel,
            JOINED_ROOM,
            {"room": user_id, "message": "Successfully joined user room"},
        )

    async def leave(self, channel: Channel, user_id: str) -> None:
        async with self._lock:
            self._discard(channel, user_id)
            rooms = self._by_channel.get(channel)
            if rooms is not None:
                rooms.discard(user_id)
        logger.info("Channel %s left user room %s", channel.id, user_id)

    async def disconnect(self, channel: Channel) -> list[str]:
        """Remove *channel* from every user set. Returns the users it belonged to."""
        async with self._lock:
            rooms = self._by_channel.pop(channel, set())
            for user_id in rooms:
                self._discard(channel, user_id)
        channel.connected = False
        logger.info("Channel disconnected: %s", channel.id)
        return sorted(rooms)

    async def broadcast_to_user(
        self,
        user_id: str,
        event: str,
        payload: dict[str, Any],
        *,
        exclude: Channel | None = None,
    ) -> int:
        """Send *event* to every live channel of *user_id*.

        Returns the number of channels reached; zero when the user has no
        live channel.  Channels whose send fails are disconnected.

        Raises
        ------
        TransportUnavailableError
            If the registry has been closed.
        """
        if self._closed:
            raise TransportUnavailableError("presence registry is closed")
        async with self._lock:
            targets = [c for c in self._by_user.get(user_id, ()) if c is not exclude]
        delivered = 0
        for channel in targets:
            if await self.send_to_channel(channel, event, payload):
                delivered += 1
        return delivered

    @property
    def connection_count(self) -> int:
        """Number of live connections, joined or not."""
        return len(self._by_channel)

    @property
    def online_count(self) -> int:
        """Number of users with at least one live connection."""
        return len(self._by_user)

    def snapshot(self) -> list[dict[str, Any]]:
        """Describe every live connection for diagnostics."""
        return [
            {"id": channel.id, "rooms": sorted(rooms), "connected": channel.connected}
            for channel, rooms in list(self._by_channel.items())
        ]

    async def close(self) -> None:
        """Drop every channel and refuse further broadcasts."""
        async with self._lock:
            self._closed = True
            self._by_user.clear()
            self._by_channel.clear()

    async def send_to_channel(self, channel: Channel, event: str, payload: Any) -> bool:
        """Send to one channel; a failed send disconnects it. Returns True if sent."""
        try:
            await channel.send(event, payload)
            return True
        except Exception:
            logger.debug("Send to channel %s failed, disconnecting", channel.id)
            await self.disconnect(channel)
            return False

    # -- internals ---------------------------------------------------------

    def _discard(self, channel: Channel, user_id: str) -> None:
        members = self._by_user.get(user_id)
        if members is None:
            return
        members.discard(channel)
        if not members:
            del self._by_user[user_id]
