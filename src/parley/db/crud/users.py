"""CRUD operations for User entities (the user directory).

Every function takes ``session: AsyncSession`` as its first parameter.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from parley.db.models import User, utcnow


async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    token: str,
    *,
    avatar_url: str = "",
    commit: bool = True,
) -> User:
    """Create a new User record.

    When *commit* is ``False`` the row is flushed but the caller is
    responsible for committing the session.
    """
    user = User(name=name, email=email.lower(), token=token, avatar_url=avatar_url)
    session.add(user)
    if commit:
        await session.commit()
        await session.refresh(user)
    else:
        await session.flush()
    return user


async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    stmt = select(User).where(User.email == email.lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_token(session: AsyncSession, token: str) -> User | None:
    """Look up a user by bearer token."""
    stmt = select(User).where(User.token == token)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_users_by_ids(
    session: AsyncSession, user_ids: Iterable[str]
) -> dict[str, User]:
    """Fetch several users in one query, keyed by id. Missing ids are absent."""
    ids = set(user_ids)
    if not ids:
        return {}
    stmt = select(User).where(User.id.in_(ids))  # type: ignore[union-attr]
    result = await session.execute(stmt)
    return {user.id: user for user in result.scalars().all()}


async def update_user(
    session: AsyncSession, user_id: str, *, commit: bool = True, **kwargs: object
) -> User | None:
    """Update profile fields on a user. Returns ``None`` if not found."""
    user = await get_user_by_id(session, user_id)
    if user is None:
        return None
    for key, value in kwargs.items():
        setattr(user, key, value)
    user.updated_at = utcnow()
    session.add(user)
    if commit:
        await session.commit()
        await session.refresh(user)
    else:
        await session.flush()
    return user


async def activate_subscription(
    session: AsyncSession, user_id: str, plan: str, duration: str, *, commit: bool = True
) -> User | None:
    """Put *user_id* on *plan* with an active status, starting now."""
    return await update_user(
        session,
        user_id,
        commit=commit,
        subscription_plan=plan,
        subscription_duration=duration,
        subscription_status="active",
        subscription_started_at=utcnow(),
    )


async def adjust_item_count(session: AsyncSession, user_id: str, delta: int) -> None:
    """Add *delta* to the user's active item count, never going below zero.

    Runs as a single UPDATE; the caller commits.
    """
    await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(item_count=case((User.item_count + delta < 0, 0), else_=User.item_count + delta))
        .execution_options(synchronize_session=False)
    )
