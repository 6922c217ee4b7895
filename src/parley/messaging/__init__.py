"""Messaging core: controller, events, fan-out and attachments.

Usage::

    from parley.messaging import MessageController, FanoutDispatcher

    outcome = await MessageController(session).send_message(alice, bob, "hi")
    await dispatcher.dispatch(outcome.events)
"""

from parley.messaging.attachments import AttachmentStore, IncomingFile
from parley.messaging.controller import MessageController
from parley.messaging.dispatcher import FanoutDispatcher
from parley.messaging.errors import (
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ParleyError,
    QuotaExceededError,
    TransportUnavailableError,
    ValidationError,
)
from parley.messaging.events import Event, Outcome

__all__ = [
    "AttachmentStore",
    "Event",
    "FanoutDispatcher",
    "ForbiddenError",
    "IncomingFile",
    "InvalidOperationError",
    "MessageController",
    "NotFoundError",
    "Outcome",
    "ParleyError",
    "QuotaExceededError",
    "TransportUnavailableError",
    "ValidationError",
]
