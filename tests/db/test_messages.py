"""Tests for Message CRUD operations."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from parley.db.crud.messages import (
    count_conversation,
    count_messages,
    count_unread,
    create_message,
    delete_message,
    get_conversation_page,
    get_message_by_id,
    get_message_for_sender,
    mark_conversation_read,
    mark_read,
)
from parley.db.crud.users import create_user
from parley.db.models import Message


async def _send(session, sender, receiver, content="hello", **kwargs):
    """Helper to store a message with sensible defaults."""
    return await create_message(session, sender.id, receiver.id, content, **kwargs)


async def test_create_message(users, session):
    alice, bob, _ = users
    msg = await _send(session, alice, bob)
    assert msg.id is not None
    assert msg.sender_id == alice.id
    assert msg.receiver_id == bob.id
    assert msg.message_type == "text"
    assert msg.attachments == []
    assert msg.is_read is False
    assert msg.read_at is None
    assert msg.created_at is not None


async def test_create_message_with_attachments(users, session):
    alice, bob, _ = users
    descriptor = {
        "url": "/uploads/x.png",
        "filename": "x.png",
        "originalName": "photo.png",
        "size": 3,
        "mimetype": "image/png",
    }
    msg = await _send(session, alice, bob, message_type="file", attachments=[descriptor])
    stored = await get_message_by_id(session, msg.id)
    assert stored.attachments == [descriptor]
    assert stored.message_type == "file"


async def test_message_ids_increase(users, session):
    alice, bob, _ = users
    first = await _send(session, alice, bob, "1")
    second = await _send(session, bob, alice, "2")
    assert second.id > first.id


async def test_get_message_for_sender(users, session):
    alice, bob, _ = users
    msg = await _send(session, alice, bob)
    assert (await get_message_for_sender(session, msg.id, alice.id)).id == msg.id
    assert await get_message_for_sender(session, msg.id, bob.id) is None


async def test_conversation_page_is_chronological(users, session):
    alice, bob, carol = users
    await _send(session, alice, bob, "one")
    await _send(session, bob, alice, "two")
    await _send(session, alice, carol, "elsewhere")
    await _send(session, alice, bob, "three")

    page = await get_conversation_page(session, alice.id, bob.id)
    assert [m.content for m in page] == ["one", "two", "three"]
    assert await count_conversation(session, bob.id, alice.id) == 3


async def test_conversation_page_counts_back_from_newest(users, session):
    alice, bob, _ = users
    for i in range(5):
        await _send(session, alice, bob, f"m{i}")

    newest = await get_conversation_page(session, alice.id, bob.id, offset=0, limit=2)
    older = await get_conversation_page(session, alice.id, bob.id, offset=2, limit=2)
    oldest = await get_conversation_page(session, alice.id, bob.id, offset=4, limit=2)
    assert [m.content for m in newest] == ["m3", "m4"]
    assert [m.content for m in older] == ["m1", "m2"]
    assert [m.content for m in oldest] == ["m0"]


async def test_same_timestamp_ordered_by_id(users, session):
    alice, bob, _ = users
    stamp = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    for content in ("a", "b", "c"):
        session.add(
            Message(
                sender_id=alice.id,
                receiver_id=bob.id,
                content=content,
                created_at=stamp,
                updated_at=stamp,
            )
        )
    await session.commit()

    page = await get_conversation_page(session, alice.id, bob.id)
    assert [m.content for m in page] == ["a", "b", "c"]


async def test_mark_conversation_read(users, session):
    alice, bob, _ = users
    m1 = await _send(session, alice, bob, "1")
    m2 = await _send(session, alice, bob, "2")
    await _send(session, bob, alice, "reply")

    ids = await mark_conversation_read(session, bob.id, alice.id)
    assert ids == [m1.id, m2.id]
    assert await count_unread(session, bob.id) == 0
    # Alice's unread reply is untouched
    assert await count_unread(session, alice.id) == 1


async def test_mark_conversation_read_is_idempotent(users, session):
    alice, bob, _ = users
    await _send(session, alice, bob)
    assert len(await mark_conversation_read(session, bob.id, alice.id)) == 1
    assert await mark_conversation_read(session, bob.id, alice.id) == []


async def test_mark_conversation_read_sets_read_at(users, session):
    alice, bob, _ = users
    msg = await _send(session, alice, bob)
    await mark_conversation_read(session, bob.id, alice.id)

    page = await get_conversation_page(session, alice.id, bob.id)
    assert page[0].id == msg.id
    assert page[0].is_read is True
    assert page[0].read_at is not None


async def test_mark_read_only_receiver_unread(users, session):
    alice, bob, _ = users
    to_bob = await _send(session, alice, bob)
    to_alice = await _send(session, bob, alice)

    # Only messages addressed to bob qualify
    assert await mark_read(session, bob.id, [to_bob.id, to_alice.id, 9999]) == 1
    assert await mark_read(session, bob.id, [to_bob.id]) == 0
    assert await mark_read(session, bob.id, []) == 0


async def test_count_unread(users, session):
    alice, bob, carol = users
    await _send(session, alice, bob)
    await _send(session, carol, bob)
    await _send(session, bob, alice)
    assert await count_unread(session, bob.id) == 2
    assert await count_unread(session, carol.id) == 0


async def test_delete_message(users, session):
    alice, bob, _ = users
    msg = await _send(session, alice, bob)
    assert await delete_message(session, msg.id) == 1
    assert await count_messages(session) == 0
    assert await delete_message(session, msg.id) == 0


async def test_timestamps_read_back_as_utc(users, session):
    alice, bob, _ = users
    msg = await _send(session, alice, bob)
    session.expunge_all()

    stored = await get_message_by_id(session, msg.id)
    assert stored.created_at.utcoffset() == timedelta(0)
    assert stored.updated_at.utcoffset() == timedelta(0)

    await mark_conversation_read(session, bob.id, alice.id)
    (page_msg,) = await get_conversation_page(session, alice.id, bob.id)
    assert page_msg.read_at.utcoffset() == timedelta(0)


async def test_offset_timestamps_stored_as_utc(users, session):
    alice, bob, _ = users
    local = datetime(2024, 1, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    session.add(
        Message(
            sender_id=alice.id,
            receiver_id=bob.id,
            content="hi",
            created_at=local,
            updated_at=local,
        )
    )
    await session.commit()
    session.expunge_all()

    (stored,) = await get_conversation_page(session, alice.id, bob.id)
    assert stored.created_at == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert stored.created_at.tzinfo is not None


async def test_mark_conversation_read_returns_only_transitioned(users, session):
    alice, bob, _ = users
    m1 = await _send(session, alice, bob, "1")
    m2 = await _send(session, alice, bob, "2")
    m3 = await _send(session, alice, bob, "3")

    assert await mark_read(session, bob.id, [m2.id]) == 1
    assert await mark_conversation_read(session, bob.id, alice.id) == [m1.id, m3.id]


async def test_concurrent_conversation_reads_claim_each_message_once(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}", connect_args={"timeout": 10}
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with factory() as setup:
            alice = await create_user(setup, "Alice", "alice@example.com", "tok-alice")
            bob = await create_user(setup, "Bob", "bob@example.com", "tok-bob")
            sent = [await _send(setup, alice, bob, f"m{i}") for i in range(5)]

        async def read_as_bob():
            async with factory() as sess:
                return await mark_conversation_read(sess, bob.id, alice.id)

        first, second = await asyncio.gather(read_as_bob(), read_as_bob())
    finally:
        await engine.dispose()

    # Every message is reported by exactly one of the two readers
    assert sorted(first + second) == [m.id for m in sent]
    assert not set(first) & set(second)
