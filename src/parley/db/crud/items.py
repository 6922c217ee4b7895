"""CRUD operations for Item entities.

Every function takes ``session: AsyncSession`` as its first parameter.
Reads only ever see active items owned by the caller; soft-deleted rows
are invisible everywhere.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from parley.db.models import Item, ItemTag, utcnow


def _visible(owner_id: str):
    return (Item.owner_id == owner_id, Item.is_active.is_(True))  # type: ignore[union-attr]


def _filters(owner_id: str, tags: Sequence[str] = (), search: str | None = None) -> list:
    clauses = list(_visible(owner_id))
    if tags:
        tagged = select(ItemTag.item_id).where(ItemTag.tag.in_(list(tags)))  # type: ignore[attr-defined]
        clauses.append(Item.id.in_(tagged))  # type: ignore[union-attr]
    if search:
        clauses.append(
            or_(
                Item.title.icontains(search, autoescape=True),  # type: ignore[attr-defined]
                Item.description.icontains(search, autoescape=True),  # type: ignore[attr-defined]
            )
        )
    return clauses


async def _replace_tags(session: AsyncSession, item: Item) -> None:
    await session.execute(delete(ItemTag).where(ItemTag.item_id == item.id))
    for tag in dict.fromkeys(item.tags):
        session.add(ItemTag(item_id=item.id, tag=tag))


async def create_item(
    session: AsyncSession,
    owner_id: str,
    title: str,
    description: str,
    content: str,
    *,
    tags: Sequence[str] = (),
    images: Sequence[dict] = (),
    commit: bool = True,
) -> Item:
    """Store a new active item and its tag rows."""
    item = Item(
        owner_id=owner_id,
        title=title,
        description=description,
        content=content,
        tags=list(tags),
        images=list(images),
    )
    session.add(item)
    await session.flush()
    await _replace_tags(session, item)
    if commit:
        await session.commit()
        await session.refresh(item)
    else:
        await session.flush()
    return item


async def get_item(session: AsyncSession, item_id: int, owner_id: str) -> Item | None:
    """Fetch an active item only if *owner_id* owns it."""
    stmt = select(Item).where(Item.id == item_id, *_visible(owner_id))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_items(
    session: AsyncSession,
    owner_id: str,
    *,
    tags: Sequence[str] = (),
    search: str | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Item], int]:
    """One page of the owner's active items, newest first, plus the total.

    *tags* matches items carrying any of them; *search* is a
    case-insensitive substring over title and description.
    """
    clauses = _filters(owner_id, tags, search)
    stmt = (
        select(Item)
        .where(*clauses)
        .order_by(Item.created_at.desc(), Item.id.desc())  # type: ignore[union-attr]
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    items = list(result.scalars().all())

    count = await session.execute(select(func.count()).select_from(Item).where(*clauses))
    return items, count.scalar_one()


async def update_item(
    session: AsyncSession, item: Item, *, commit: bool = True, **fields: object
) -> Item:
    """Apply *fields* to *item*. Tag rows follow ``tags`` when it changes."""
    for key, value in fields.items():
        setattr(item, key, value)
    item.updated_at = utcnow()
    session.add(item)
    if "tags" in fields:
        await _replace_tags(session, item)
    if commit:
        await session.commit()
        await session.refresh(item)
    else:
        await session.flush()
    return item


async def deactivate_item(session: AsyncSession, item: Item, *, commit: bool = True) -> Item:
    """Soft-delete *item*; its images list is cleared."""
    return await update_item(session, item, commit=commit, is_active=False, images=[])


async def count_items(session: AsyncSession, owner_id: str) -> int:
    """Count the owner's active items."""
    stmt = select(func.count()).select_from(Item).where(*_visible(owner_id))
    result = await session.execute(stmt)
    return result.scalar_one()
