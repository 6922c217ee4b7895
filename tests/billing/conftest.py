"""Fixtures for billing tests: an in-memory store and the mock gateway."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import parley.db.models  # noqa: F401 -- registers all tables with SQLModel.metadata
from parley.billing.controller import BillingController
from parley.billing.gateway import MockPaymentGateway
from parley.db.crud.users import create_user


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
def controller(session):
    return BillingController(session, MockPaymentGateway())


@pytest.fixture
async def users(session):
    """Two registered users: alice and bob."""
    alice = await create_user(session, "Alice", "alice@example.com", "tok-alice")
    bob = await create_user(session, "Bob", "bob@example.com", "tok-bob")
    return alice, bob
