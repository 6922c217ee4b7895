"""Fixtures for item store tests: an in-memory store plus an image dir."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import parley.db.models  # noqa: F401 -- registers all tables with SQLModel.metadata
from parley.content.items import ItemController
from parley.db.crud.users import create_user
from parley.messaging.attachments import IMAGE_MIME_TYPES, AttachmentStore, IncomingFile


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
def image_store(upload_dir):
    return AttachmentStore(
        upload_dir,
        allowed_types=IMAGE_MIME_TYPES,
        name_prefix="item",
        type_error="Invalid file type. Only images are allowed",
    )


@pytest.fixture
def controller(session, image_store):
    return ItemController(session, image_store, free_limit=2)


@pytest.fixture
async def users(session):
    """Two registered users: alice and bob."""
    alice = await create_user(session, "Alice", "alice@example.com", "tok-alice")
    bob = await create_user(session, "Bob", "bob@example.com", "tok-bob")
    return alice, bob


@pytest.fixture
def png_file():
    return IncomingFile(filename="photo.png", content_type="image/png", data=b"\x89PNG....")
