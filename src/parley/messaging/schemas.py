"""Client-facing views of messages, users and conversations.

Field names are camelCase on the wire; the same dumps feed both HTTP
responses and real-time event payloads.
"""

from __future__ import annotations

from datetime import datetime
from math import ceil
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from parley.db.crud.conversations import ConversationRow
from parley.db.models import Message, User


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class UserProfile(CamelModel):
    id: str
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_user(cls, user: User | None, user_id: str) -> UserProfile:
        """Project *user*; a missing directory record keeps only the id."""
        if user is None:
            return cls(id=user_id)
        return cls(id=user.id, name=user.name, email=user.email, avatar_url=user.avatar_url)


class AttachmentInfo(CamelModel):
    url: str
    filename: str
    original_name: str
    size: int
    mimetype: str


class MessageView(CamelModel):
    id: int
    sender: UserProfile
    receiver: UserProfile
    content: str
    message_type: str
    attachments: list[AttachmentInfo]
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, message: Message, users: dict[str, User]) -> MessageView:
        """Build a view with sender and receiver populated from *users*."""
        return cls(
            id=message.id,
            sender=UserProfile.from_user(users.get(message.sender_id), message.sender_id),
            receiver=UserProfile.from_user(users.get(message.receiver_id), message.receiver_id),
            content=message.content,
            message_type=message.message_type,
            attachments=[AttachmentInfo.model_validate(a) for a in message.attachments or []],
            is_read=message.is_read,
            read_at=message.read_at,
            created_at=message.created_at,
            updated_at=message.updated_at,
        )


class ConversationSummary(CamelModel):
    peer: UserProfile
    last_message: MessageView
    unread_count: int
    total_messages: int

    @classmethod
    def from_row(cls, row: ConversationRow, self_user: User | None, self_id: str) -> ConversationSummary:
        users: dict[str, User] = {}
        if self_user is not None:
            users[self_id] = self_user
        if row.peer is not None:
            users[row.peer_id] = row.peer
        return cls(
            peer=UserProfile.from_user(row.peer, row.peer_id),
            last_message=MessageView.build(row.last_message, users),
            unread_count=row.unread_count,
            total_messages=row.total_messages,
        )


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def compute(cls, page: int, limit: int, total: int) -> Pagination:
        return cls(page=page, limit=limit, total=total, pages=ceil(total / limit))


class ConversationPage(CamelModel):
    """One page of a conversation, oldest message first."""

    messages: list[MessageView]
    other_user: UserProfile
    pagination: Pagination
