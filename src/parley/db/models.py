"""SQLModel table definitions for the Parley database.

``User`` is the directory record the messaging core references by id and
carries the account's subscription state.  ``Message`` is the durable
direct message; conversations are never stored, they are derived from
``messages`` at query time.  ``Item`` is a user-owned content record with
optional images and ``Payment`` records one (mocked) subscription charge.

All timestamps are timezone-aware UTC (see :class:`UTCDateTime`).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Index
from sqlmodel import Field, SQLModel

from parley.db.types import UTCDateTime

MESSAGE_TYPES = ("text", "image", "file")
SUBSCRIPTION_PLANS = ("free", "premium", "enterprise")
SUBSCRIPTION_STATUSES = ("active", "canceled", "past_due")
PAYMENT_STATUSES = (
    "requires_payment_method",
    "requires_confirmation",
    "processing",
    "requires_action",
    "succeeded",
    "canceled",
)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_user_id() -> str:
    return uuid.uuid4().hex


class User(SQLModel, table=True):
    """A directory entry; the messaging core only reads it."""

    __tablename__ = "users"

    id: str = Field(default_factory=new_user_id, primary_key=True)
    name: str = Field(max_length=50)
    email: str = Field(index=True, unique=True)
    avatar_url: str = Field(default="")
    token: str = Field(index=True, unique=True)
    subscription_plan: str = Field(default="free")
    subscription_status: str = Field(default="active")
    subscription_duration: str | None = None
    subscription_started_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    item_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    def can_create_item(self, free_limit: int) -> bool:
        """Free accounts may own at most *free_limit* active items."""
        return self.subscription_plan != "free" or self.item_count < free_limit


class Message(SQLModel, table=True):
    """A direct message between two users.

    Immutable after creation except for the one-way ``is_read`` /
    ``read_at`` transition and hard deletion by the sender.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_pair_created", "sender_id", "receiver_id", "created_at"),
        Index("ix_messages_receiver_unread", "receiver_id", "is_read"),
    )

    id: int | None = Field(default=None, primary_key=True)
    sender_id: str = Field(index=True)
    receiver_id: str = Field(index=True)
    content: str = Field(max_length=1000)
    message_type: str = Field(default="text")
    attachments: list[dict] = Field(default_factory=list, sa_type=JSON)
    is_read: bool = Field(default=False)
    read_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Item(SQLModel, table=True):
    """A user-owned content record.

    Deletion is soft: ``is_active`` flips to ``False`` and the row stays.
    ``tags`` mirrors the rows in ``item_tags`` for display.
    """

    __tablename__ = "items"
    __table_args__ = (Index("ix_items_owner_created", "owner_id", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    owner_id: str = Field(index=True)
    title: str = Field(max_length=100)
    description: str = Field(max_length=500)
    content: str
    images: list[dict] = Field(default_factory=list, sa_type=JSON)
    tags: list[str] = Field(default_factory=list, sa_type=JSON)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ItemTag(SQLModel, table=True):
    """One tag on one item; lets tag filters run as plain SQL on any backend."""

    __tablename__ = "item_tags"

    item_id: int = Field(primary_key=True, foreign_key="items.id")
    tag: str = Field(primary_key=True, index=True)


class Payment(SQLModel, table=True):
    """One subscription charge against the (mock) payment provider."""

    __tablename__ = "payments"
    __table_args__ = (Index("ix_payments_user_created", "user_id", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    payment_intent_id: str = Field(index=True, unique=True)
    customer_id: str
    amount: float
    currency: str = Field(default="usd")
    status: str = Field(default="requires_payment_method")
    payment_method: str | None = None
    description: str = Field(default="")
    plan_type: str
    duration: str
    details: dict = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


__all__ = [
    "MESSAGE_TYPES",
    "PAYMENT_STATUSES",
    "SUBSCRIPTION_PLANS",
    "SUBSCRIPTION_STATUSES",
    "Item",
    "ItemTag",
    "Message",
    "Payment",
    "User",
    "new_user_id",
    "utcnow",
]
