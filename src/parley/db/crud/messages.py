"""CRUD operations for Message entities.

Every function takes ``session: AsyncSession`` as its first parameter.
Ordering within a pair is ``created_at`` with ties broken by ``id``
(insertion order).
"""

from __future__ import annotations

from sqlalchemy import and_, delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from parley.db.models import Message, utcnow


def _pair_clause(user_a: str, user_b: str):
    """WHERE clause matching messages exchanged between two users, either direction."""
    return or_(
        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
    )


async def create_message(
    session: AsyncSession,
    sender_id: str,
    receiver_id: str,
    content: str,
    message_type: str = "text",
    attachments: list[dict] | None = None,
    *,
    commit: bool = True,
) -> Message:
    """Store a new message.

    When *commit* is ``False`` the row is flushed (so ``id`` is available)
    but the caller is responsible for committing the session.
    """
    msg = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        message_type=message_type,
        attachments=list(attachments or []),
    )
    session.add(msg)
    if commit:
        await session.commit()
        await session.refresh(msg)
    else:
        await session.flush()
    return msg


async def get_message_by_id(session: AsyncSession, message_id: int) -> Message | None:
    return await session.get(Message, message_id)


async def get_message_for_sender(
    session: AsyncSession, message_id: int, sender_id: str
) -> Message | None:
    """Look up a message only if *sender_id* authored it."""
    stmt = select(Message).where(
        Message.id == message_id, Message.sender_id == sender_id
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_conversation_page(
    session: AsyncSession,
    user_a: str,
    user_b: str,
    offset: int = 0,
    limit: int = 50,
) -> list[Message]:
    """Fetch one page of a pair's messages, oldest first.

    Pages count back from the newest message: page one holds the latest
    *limit* messages.
    """
    stmt = (
        select(Message)
        .where(_pair_clause(user_a, user_b))
        .order_by(Message.created_at.desc(), Message.id.desc())  # type: ignore[union-attr]
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    page = list(result.scalars().all())
    page.reverse()
    return page


async def count_conversation(session: AsyncSession, user_a: str, user_b: str) -> int:
    stmt = select(func.count()).select_from(Message).where(_pair_clause(user_a, user_b))
    result = await session.execute(stmt)
    return result.scalar_one()


async def mark_conversation_read(
    session: AsyncSession, reader_id: str, peer_id: str
) -> list[int]:
    """Mark every unread message from *peer_id* to *reader_id* as read.

    One ``UPDATE ... RETURNING`` statement both flips the rows and reports
    them, so concurrent readers never both claim the same message.
    Returns the ids this call transitioned, ascending.
    """
    stmt = (
        update(Message)
        .where(
            Message.sender_id == peer_id,
            Message.receiver_id == reader_id,
            Message.is_read.is_(False),  # type: ignore[union-attr]
        )
        .values(is_read=True, read_at=utcnow())
        .returning(Message.id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    ids = sorted(result.scalars().all())
    await session.commit()
    return ids


async def mark_read(
    session: AsyncSession, reader_id: str, message_ids: list[int]
) -> int:
    """Mark the given messages read if *reader_id* received them and they
    are still unread.  Other ids are skipped silently.  Returns the count
    updated."""
    if not message_ids:
        return 0
    stmt = (
        update(Message)
        .where(
            Message.id.in_(message_ids),  # type: ignore[union-attr]
            Message.receiver_id == reader_id,
            Message.is_read.is_(False),  # type: ignore[union-attr]
        )
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount  # type: ignore[return-value]


async def delete_message(session: AsyncSession, message_id: int) -> int:
    """Hard-delete a message by id. Returns the count deleted."""
    result = await session.execute(delete(Message).where(Message.id == message_id))
    await session.commit()
    return result.rowcount  # type: ignore[return-value]


async def count_unread(session: AsyncSession, user_id: str) -> int:
    """Count unread messages addressed to *user_id*."""
    stmt = (
        select(func.count())
        .select_from(Message)
        .where(
            Message.receiver_id == user_id,
            Message.is_read.is_(False),  # type: ignore[union-attr]
        )
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def count_messages(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Message))
    return result.scalar_one()
