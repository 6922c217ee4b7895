"""Application-level heartbeat for live channels.

Sends a periodic ``ping`` frame to every tracked channel and disconnects
channels that have not answered with ``pong`` in time, so dead transports
never linger in the presence registry.
"""

from __future__ import annotations

import asyncio
import logging
import time

from parley.messaging.events import PING
from parley.server.connections import Channel, PresenceRegistry

logger = logging.getLogger(__name__)

PING_INTERVAL: float = 25.0  # seconds between pings
PONG_TIMEOUT: float = 60.0   # seconds to wait for pong after ping


class HeartbeatManager:
    """Tracks channel liveness via ping/pong.

    Parameters
    ----------
    registry:
        The ``PresenceRegistry`` that owns the channels.
    ping_interval:
        Seconds between ping sweeps.
    pong_timeout:
        Extra seconds allowed past one interval before a silent channel
        is considered dead.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        ping_interval: float = PING_INTERVAL,
        pong_timeout: float = PONG_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._ping_interval = ping_interval
        self._pong_timeout = pong_timeout
        self._last_pong: dict[Channel, float] = {}
        self._task: asyncio.Task | None = None

    # -- public lifecycle --------------------------------------------------

    async def start(self) -> None:
        self._task = asyncio.create_task(self._ping_loop())

    async def stop(self) -> None:
        """Cancel the background ping loop and wait for clean shutdown."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    # -- connection tracking -----------------------------------------------

    def record_connect(self, channel: Channel) -> None:
        """Give *channel* an initial pong credit."""
        self._last_pong[channel] = time.monotonic()

    def record_pong(self, channel: Channel) -> None:
        self._last_pong[channel] = time.monotonic()

    def record_disconnect(self, channel: Channel) -> None:
        self._last_pong.pop(channel, None)

    # -- background loop ---------------------------------------------------

    async def _ping_loop(self) -> None:
        while True:
            await asyncio.sleep(self._ping_interval)
            await self.sweep()

    async def sweep(self) -> None:
        """Ping live channels and disconnect the ones that timed out."""
        now = time.monotonic()
        for channel, last in list(self._last_pong.items()):
            if now - last > self._ping_interval + self._pong_timeout:
                logger.warning(
                    "Heartbeat timeout for %s (%.1fs since last pong), disconnecting",
                    channel.id,
                    now - last,
                )
                self._last_pong.pop(channel, None)
                await self._registry.disconnect(channel)
                try:
                    await channel.close(code=1001, reason="heartbeat timeout")
                except Exception:
                    logger.debug("Close after heartbeat timeout failed for %s", channel.id)
            else:
                await self._registry.send_to_channel(channel, PING, {"ts": now})
