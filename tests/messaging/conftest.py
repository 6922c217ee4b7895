"""Fixtures for messaging-core tests: an in-memory store plus an attachment dir."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

import parley.db.models  # noqa: F401 -- registers all tables with SQLModel.metadata
from parley.db.crud.users import create_user
from parley.messaging.attachments import AttachmentStore, IncomingFile
from parley.messaging.controller import MessageController


@pytest.fixture
async def session():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    factory = async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False)
    async with factory() as sess:
        yield sess
    await eng.dispose()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def attachment_store(upload_dir):
    return AttachmentStore(upload_dir)


@pytest.fixture
def controller(session, attachment_store):
    return MessageController(session, attachment_store)


@pytest.fixture
async def users(session):
    """Three registered users: alice, bob and carol."""
    alice = await create_user(session, "Alice", "alice@example.com", "tok-alice")
    bob = await create_user(session, "Bob", "bob@example.com", "tok-bob")
    carol = await create_user(session, "Carol", "carol@example.com", "tok-carol")
    return alice, bob, carol


@pytest.fixture
def png_file():
    return IncomingFile(filename="photo.png", content_type="image/png", data=b"\x89PNG....")


@pytest.fixture
def pdf_file():
    return IncomingFile(filename="notes.pdf", content_type="application/pdf", data=b"%PDF-1.4")
