"""Item store endpoints.

GET    /items              -- caller's items (page, limit, tags, search)
GET    /items/{id}         -- one item
POST   /items              -- create (multipart form, optional images)
PUT    /items/{id}         -- update; new images are appended
DELETE /items/{id}/images  -- remove one image by URL
DELETE /items/{id}         -- soft delete
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from parley.content.items import DEFAULT_PAGE_SIZE, ItemController
from parley.db.models import User
from parley.db.session import get_session
from parley.server.auth import verify_token_http
from parley.server.models import RemoveImageRequest
from parley.server.routes.messages import read_uploads

router = APIRouter(prefix="/items", tags=["items"])


def _controller(request: Request, session: AsyncSession) -> ItemController:
    return ItemController(
        session,
        request.app.state.item_images,
        free_limit=request.app.state.settings.free_item_limit,
    )


@router.get("")
async def list_items(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=100),
    tags: str | None = Query(default=None),
    search: str | None = Query(default=None),
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    items, pagination = await _controller(request, session).list_items(
        user, page, limit, tags, search
    )
    return {
        "success": True,
        "data": [item.dump() for item in items],
        "pagination": pagination.model_dump(),
    }


@router.get("/{item_id}")
async def get_item(
    item_id: int,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    item = await _controller(request, session).get_item(user, item_id)
    return {"success": True, "data": item.dump()}


@router.post("", status_code=201)
async def create_item(
    request: Request,
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    content: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    images: list[UploadFile] | None = File(default=None),
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    files = await read_uploads(request.app.state.item_images, images)
    item = await _controller(request, session).create_item(
        user, title, description, content, tags, files
    )
    return {"success": True, "data": item.dump(), "message": "Item created successfully"}


@router.put("/{item_id}")
async def update_item(
    item_id: int,
    request: Request,
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    content: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    images: list[UploadFile] | None = File(default=None),
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    files = await read_uploads(request.app.state.item_images, images)
    item = await _controller(request, session).update_item(
        user, item_id, title, description, content, tags, files
    )
    return {"success": True, "data": item.dump(), "message": "Item updated successfully"}


@router.delete("/{item_id}/images")
async def remove_image(
    item_id: int,
    body: RemoveImageRequest,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    item = await _controller(request, session).remove_image(user, item_id, body.image_url)
    return {"success": True, "data": item.dump(), "message": "Image deleted successfully"}


@router.delete("/{item_id}")
async def delete_item(
    item_id: int,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    await _controller(request, session).delete_item(user, item_id)
    return {"success": True, "message": "Item deleted successfully"}
