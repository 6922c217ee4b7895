"""AsyncSession factory and FastAPI dependency.

``get_session`` is an async generator meant for ``fastapi.Depends`` so each
HTTP request gets its own ``AsyncSession``.  WebSocket handlers, which have
no dependency injection per frame, open sessions from
``init_session_factory(get_engine())`` directly.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

logger = logging.getLogger(__name__)

_session_factory: async_sessionmaker[AsyncSession] | None = None


def async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a new ``async_sessionmaker`` bound to *engine*.

    Sessions use ``expire_on_commit=False`` so rows stay readable after the
    commit that persisted them.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def init_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create (or return existing) session factory singleton."""
    global _session_factory  # noqa: PLW0603

    if _session_factory is None:
        _session_factory = async_session_factory(engine)
        logger.info("Session factory initialized")
    return _session_factory


def reset_session_factory() -> None:
    """Forget the cached factory (called on app shutdown)."""
    global _session_factory  # noqa: PLW0603
    _session_factory = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a per-request ``AsyncSession``.

    Raises
    ------
    RuntimeError
        If ``init_session_factory()`` has not been called yet.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Session factory not initialized. Call init_session_factory() first."
        )
    async with _session_factory() as session:
        yield session


async def create_tables(engine: AsyncEngine) -> None:
    """Create all SQLModel tables in the database."""
    import parley.db.models  # noqa: F401 -- registers tables on SQLModel.metadata

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("All SQLModel tables created")
