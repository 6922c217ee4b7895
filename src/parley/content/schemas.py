"""Client-facing view of items."""

from __future__ import annotations

from datetime import datetime

from parley.db.models import Item, User
from parley.messaging.schemas import AttachmentInfo, CamelModel, UserProfile


class ItemView(CamelModel):
    id: int
    title: str
    description: str
    content: str
    tags: list[str]
    images: list[AttachmentInfo]
    is_active: bool
    created_by: UserProfile
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, item: Item, owner: User | None) -> ItemView:
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            content=item.content,
            tags=list(item.tags or []),
            images=[AttachmentInfo.model_validate(i) for i in item.images or []],
            is_active=item.is_active,
            created_by=UserProfile.from_user(owner, item.owner_id),
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
