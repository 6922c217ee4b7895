"""Parley database package.

Re-exports the SQLModel table classes, the async engine factory, and the
session management layer for convenient top-level imports::

    from parley.db import Message, User, get_session, init_engine
"""

from parley.db.engine import (
    create_async_engine_from_url,
    dispose_engine,
    get_engine,
    init_engine,
)
from parley.db.models import Item, ItemTag, Message, Payment, User
from parley.db.session import (
    async_session_factory,
    create_tables,
    get_session,
    init_session_factory,
    reset_session_factory,
)

__all__ = [
    # Engine
    "create_async_engine_from_url",
    "dispose_engine",
    "get_engine",
    "init_engine",
    # Session
    "async_session_factory",
    "create_tables",
    "get_session",
    "init_session_factory",
    "reset_session_factory",
    # Models
    "Item",
    "ItemTag",
    "Message",
    "Payment",
    "User",
]
