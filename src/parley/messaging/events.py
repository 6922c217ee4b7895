"""Real-time domain events emitted by the message controller.

The controller never pushes anything itself.  Each operation returns its
result together with a list of :class:`Event` objects; the request layer
hands that list to :class:`parley.messaging.dispatcher.FanoutDispatcher`
once the store write has committed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from parley.messaging.schemas import MessageView

T = TypeVar("T")

RECEIVE_MESSAGE = "receive_message"
MESSAGE_SENT = "message_sent"
CONVERSATION_UPDATED = "conversation_updated"
MESSAGES_READ = "messages_read"
MESSAGE_DELETED = "message_deleted"
TYPING_INDICATOR = "typing_indicator"
USER_TYPING = "user_typing"
JOINED_ROOM = "joined_room"
WELCOME = "welcome"
PING = "ping"
ERROR = "error"


@dataclass(frozen=True)
class Event:
    """One event addressed to one user's channels."""

    name: str
    recipient: str
    payload: dict[str, Any]

    def frame(self) -> dict[str, Any]:
        """Wire representation sent over a live connection."""
        return {"event": self.name, "data": self.payload}


@dataclass
class Outcome(Generic[T]):
    """A controller result plus the events to fan out after commit."""

    result: T
    events: list[Event] = field(default_factory=list)


def message_created_events(view: MessageView) -> list[Event]:
    """Events for a newly persisted message: delivery, sender echo, list updates."""
    message = view.dump()
    sender_id = view.sender.id
    receiver_id = view.receiver.id
    return [
        Event(
            RECEIVE_MESSAGE,
            receiver_id,
            {"success": True, "data": message, "event": "new_message"},
        ),
        Event(
            MESSAGE_SENT,
            sender_id,
            {"success": True, "data": message, "event": "message_sent"},
        ),
        Event(
            CONVERSATION_UPDATED,
            receiver_id,
            {"userId": sender_id, "lastMessage": message, "event": "conversation_updated"},
        ),
        Event(
            CONVERSATION_UPDATED,
            sender_id,
            {"userId": receiver_id, "lastMessage": message, "event": "conversation_updated"},
        ),
    ]


def messages_read_event(reader_id: str, sender_id: str, message_ids: list[int]) -> Event:
    return Event(MESSAGES_READ, sender_id, {"userId": reader_id, "messageIds": message_ids})


def message_deleted_event(message_id: int, deleted_by: str, receiver_id: str) -> Event:
    return Event(MESSAGE_DELETED, receiver_id, {"messageId": message_id, "deletedBy": deleted_by})


def typing_indicator_event(
    user_id: str, user_name: str | None, receiver_id: str, is_typing: bool
) -> Event:
    return Event(
        TYPING_INDICATOR,
        receiver_id,
        {"userId": user_id, "isTyping": is_typing, "userName": user_name},
    )


def user_typing_event(
    user_id: str, user_name: str | None, receiver_id: str, is_typing: bool
) -> Event:
    return Event(
        USER_TYPING,
        receiver_id,
        {"userId": user_id, "userName": user_name, "isTyping": is_typing},
    )
