"""Async engine factory with dual-backend support.

Creates SQLAlchemy ``AsyncEngine`` instances from a database URL that may
point to either **PostgreSQL** (via ``asyncpg``) or **SQLite** (via
``aiosqlite``).  Backend-specific connection defaults are applied
automatically.

Usage::

    from parley.db.engine import init_engine, get_engine, dispose_engine

    engine = init_engine("sqlite+aiosqlite:///parley.db")
    engine = get_engine()             # retrieves cached
    await dispose_engine()            # cleanup
"""

from __future__ import annotations

import logging
import os
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine as _create_async_engine,
)

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None


def normalize_url(url: str) -> str:
    """Rewrite sync driver URLs to their async driver equivalents."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://") and "+" not in url.split("://")[0]:
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite") and "+aiosqlite" not in url:
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def create_async_engine_from_url(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an ``AsyncEngine`` from a database URL.

    - **PostgreSQL**: asyncpg with pool sizing from ``DB_POOL_SIZE`` /
      ``DB_MAX_OVERFLOW``.
    - **SQLite**: aiosqlite with ``check_same_thread=False`` and a busy
      timeout so concurrent writers wait instead of failing.

    Keyword arguments override the backend defaults.

    Raises
    ------
    ValueError
        If the URL scheme is not supported.
    """
    url = normalize_url(url)
    merged: dict[str, Any] = {"echo": False}

    if url.startswith("postgresql"):
        merged.update(
            pool_size=int(os.environ.get("DB_POOL_SIZE", "10")),
            max_overflow=int(os.environ.get("DB_MAX_OVERFLOW", "10")),
            pool_recycle=int(os.environ.get("DB_POOL_RECYCLE", "1800")),
        )
        backend = "postgresql (asyncpg)"
    elif url.startswith("sqlite"):
        merged["connect_args"] = {"check_same_thread": False, "timeout": 30}
        merged["pool_pre_ping"] = True
        backend = "sqlite (aiosqlite)"
    else:
        raise ValueError(f"Unsupported database URL scheme: {url}")

    merged.update(kwargs)
    logger.info("Creating async engine for %s backend", backend)
    return _create_async_engine(url, **merged)


def get_engine() -> AsyncEngine:
    """Return the cached engine singleton.

    Raises
    ------
    RuntimeError
        If ``init_engine`` has not been called yet.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine() first.")
    return _engine


def init_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """Create (or return existing) engine singleton."""
    global _engine  # noqa: PLW0603

    if _engine is None:
        _engine = create_async_engine_from_url(url, **kwargs)
    return _engine


async def dispose_engine() -> None:
    """Dispose of the cached engine and reset the singleton."""
    global _engine  # noqa: PLW0603

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Async engine disposed")
