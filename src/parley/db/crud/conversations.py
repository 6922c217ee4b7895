"""Conversation list aggregation.

A conversation is not stored anywhere; it is the set of messages between
one user and one peer.  ``list_conversations`` derives one summary row
per peer in a single statement so the database does the grouping:

1. For every message touching the user, compute the peer (whichever of
   sender/receiver is not the user).
2. Window over the peer partition: rank messages newest first
   (``created_at DESC, id DESC``), sum the unread messages addressed to
   the user, count all messages.
3. Keep rank 1 (the latest message) and left-join the peer's directory
   record.

Works on SQLite (3.25+) and PostgreSQL.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from parley.db.models import Message, User


@dataclass
class ConversationRow:
    """One row of the conversation list."""

    peer_id: str
    peer: User | None
    last_message: Message
    unread_count: int
    total_messages: int


def _ranked_messages(user_id: str):
    peer = case(
        (Message.sender_id == user_id, Message.receiver_id),
        else_=Message.sender_id,
    )
    unread_to_user = case(
        (
            and_(Message.receiver_id == user_id, Message.is_read.is_(False)),  # type: ignore[union-attr]
            1,
        ),
        else_=0,
    )
    return (
        select(
            Message.id.label("message_id"),  # type: ignore[union-attr]
            peer.label("peer_id"),
            func.row_number()
            .over(
                partition_by=peer,
                order_by=(Message.created_at.desc(), Message.id.desc()),  # type: ignore[union-attr]
            )
            .label("recency"),
            func.sum(unread_to_user).over(partition_by=peer).label("unread_count"),
            func.count().over(partition_by=peer).label("total_messages"),
        )
        .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
        .subquery("ranked")
    )


async def list_conversations(
    session: AsyncSession, user_id: str
) -> list[ConversationRow]:
    """Return one summary per peer, most recently active first."""
    ranked = _ranked_messages(user_id)
    stmt = (
        select(
            Message,
            User,
            ranked.c.peer_id,
            ranked.c.unread_count,
            ranked.c.total_messages,
        )
        .join(ranked, Message.id == ranked.c.message_id)
        .outerjoin(User, User.id == ranked.c.peer_id)
        .where(ranked.c.recency == 1)
        .order_by(Message.created_at.desc(), Message.id.desc())  # type: ignore[union-attr]
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return [
        ConversationRow(
            peer_id=peer_id,
            peer=peer,
            last_message=message,
            unread_count=int(unread or 0),
            total_messages=int(total),
        )
        for message, peer, peer_id, unread, total in result.all()
    ]
