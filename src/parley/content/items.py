"""Item store controller.

Items are private to their owner: every read and write is scoped to the
calling user and soft-deleted items behave as if they never existed.
Free accounts may hold a limited number of active items; paid plans are
unlimited.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from parley.content.schemas import ItemView
from parley.db.crud import items as items_crud
from parley.db.crud.users import adjust_item_count
from parley.db.models import Item, User
from parley.messaging.attachments import AttachmentStore, IncomingFile
from parley.messaging.errors import NotFoundError, QuotaExceededError, ValidationError
from parley.messaging.schemas import Pagination

logger = logging.getLogger(__name__)

FREE_ITEM_LIMIT = 5
DEFAULT_PAGE_SIZE = 10
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

_NOT_FOUND = "Item not found"


def parse_tags(raw: str | Sequence[str] | None) -> list[str]:
    """Split a comma-separated tag string; blanks and duplicates are dropped."""
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    return list(dict.fromkeys(t.strip() for t in parts if t and t.strip()))


def _check_length(value: str, field: str, limit: int) -> None:
    if len(value) > limit:
        raise ValidationError(f"{field} cannot exceed {limit} characters")


class ItemController:
    """Owner-scoped item operations for one request's session.

    Parameters
    ----------
    session:
        The request's database session.
    images:
        Store for uploaded item images.  ``None`` rejects any image.
    free_limit:
        Active items a free account may hold.
    """

    def __init__(
        self,
        session: AsyncSession,
        images: AttachmentStore | None = None,
        free_limit: int = FREE_ITEM_LIMIT,
    ) -> None:
        self._session = session
        self._images = images
        self._free_limit = free_limit

    async def _get_owned(self, user: User, item_id: int) -> Item:
        item = await items_crud.get_item(self._session, item_id, user.id)
        if item is None:
            raise NotFoundError(_NOT_FOUND)
        return item

    async def _stage(self, files: Sequence[IncomingFile], owner_id: str) -> list[dict]:
        if not files:
            return []
        if self._images is None:
            raise ValidationError("Images are not accepted")
        return await self._images.stage_all(list(files), owner_id)

    async def list_items(
        self,
        user: User,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        tags: str | None = None,
        search: str | None = None,
    ) -> tuple[list[ItemView], Pagination]:
        """Newest first.  *tags* matches any listed tag; *search* looks in title and description."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers")
        items, total = await items_crud.list_items(
            self._session,
            user.id,
            tags=parse_tags(tags),
            search=(search or "").strip() or None,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return [ItemView.build(i, user) for i in items], Pagination.compute(page, limit, total)

    async def get_item(self, user: User, item_id: int) -> ItemView:
        return ItemView.build(await self._get_owned(user, item_id), user)

    async def create_item(
        self,
        user: User,
        title: str | None,
        description: str | None,
        content: str | None,
        tags: str | Sequence[str] | None = None,
        images: Sequence[IncomingFile] = (),
    ) -> ItemView:
        title = (title or "").strip()
        description = (description or "").strip()
        content = content or ""
        if not title or not description or not content.strip():
            raise ValidationError("Title, description and content are required")
        _check_length(title, "Title", MAX_TITLE_LENGTH)
        _check_length(description, "Description", MAX_DESCRIPTION_LENGTH)

        await self._session.refresh(user)
        if not user.can_create_item(self._free_limit):
            raise QuotaExceededError(
                "Free tier limit reached. Upgrade to premium to create more items."
            )

        staged = await self._stage(images, user.id)
        try:
            item = await items_crud.create_item(
                self._session,
                user.id,
                title,
                description,
                content,
                tags=parse_tags(tags),
                images=staged,
                commit=False,
            )
            await adjust_item_count(self._session, user.id, 1)
            await self._session.commit()
        except Exception:
            if staged:
                await self._images.discard(staged)  # type: ignore[union-attr]
            raise
        await self._session.refresh(item)
        logger.info("Item %s created by %s", item.id, user.id)
        return ItemView.build(item, user)

    async def update_item(
        self,
        user: User,
        item_id: int,
        title: str | None = None,
        description: str | None = None,
        content: str | None = None,
        tags: str | Sequence[str] | None = None,
        images: Sequence[IncomingFile] = (),
    ) -> ItemView:
        """Change the given fields; blank ones keep their value.  New images are appended."""
        item = await self._get_owned(user, item_id)
        changes: dict[str, object] = {}
        title = (title or "").strip()
        description = (description or "").strip()
        if title:
            _check_length(title, "Title", MAX_TITLE_LENGTH)
            changes["title"] = title
        if description:
            _check_length(description, "Description", MAX_DESCRIPTION_LENGTH)
            changes["description"] = description
        if content and content.strip():
            changes["content"] = content
        if tags is not None:
            changes["tags"] = parse_tags(tags)

        staged = await self._stage(images, user.id)
        if staged:
            changes["images"] = [*item.images, *staged]
        try:
            item = await items_crud.update_item(self._session, item, **changes)
        except Exception:
            if staged:
                await self._images.discard(staged)  # type: ignore[union-attr]
            raise
        logger.info("Item %s updated by %s", item.id, user.id)
        return ItemView.build(item, user)

    async def delete_item(self, user: User, item_id: int) -> None:
        """Soft-delete the item and remove its image files."""
        item = await self._get_owned(user, item_id)
        images = list(item.images)
        await items_crud.deactivate_item(self._session, item, commit=False)
        await adjust_item_count(self._session, user.id, -1)
        await self._session.commit()
        if images and self._images is not None:
            await self._images.discard(images)
        logger.info("Item %s deleted by %s", item_id, user.id)

    async def remove_image(self, user: User, item_id: int, image_url: str | None) -> ItemView:
        if not image_url:
            raise ValidationError("Image URL is required")
        item = await self._get_owned(user, item_id)
        kept = [i for i in item.images if i.get("url") != image_url]
        if len(kept) == len(item.images):
            raise NotFoundError("Image not found")
        removed = [i for i in item.images if i.get("url") == image_url]
        item = await items_crud.update_item(self._session, item, images=kept)
        if self._images is not None:
            await self._images.discard(removed)
        return ItemView.build(item, user)
