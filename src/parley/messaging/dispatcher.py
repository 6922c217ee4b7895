"""Best-effort delivery of controller events to live channels."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from parley.messaging.errors import TransportUnavailableError
from parley.messaging.events import Event

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def broadcast_to_user(
        self, user_id: str, event: str, payload: dict, *, exclude: object | None = None
    ) -> int: ...


class FanoutDispatcher:
    """Pushes events to every live channel of each recipient.

    Delivery is fire-and-forget.  A recipient with no live channel is
    normal (the message is already stored and will be fetched later), and
    transport failures are logged, never raised: the operation that
    produced the events has already committed.
    """

    def __init__(self, transport: Transport | None) -> None:
        self._transport = transport

    async def dispatch(self, events: Iterable[Event]) -> int:
        """Deliver *events*; returns the number of channel sends that succeeded."""
        delivered = 0
        for event in events:
            try:
                if self._transport is None:
                    raise TransportUnavailableError("no live channel layer configured")
                delivered += await self._transport.broadcast_to_user(
                    event.recipient, event.name, event.payload
                )
            except TransportUnavailableError as exc:
                logger.warning("Dropped %s for %s: %s", event.name, event.recipient, exc)
            except Exception:
                logger.exception("Fan-out of %s to %s failed", event.name, event.recipient)
        return delivered
