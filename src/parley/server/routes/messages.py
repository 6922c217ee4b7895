"""Direct-message endpoints.

POST   /messages                      -- send (multipart or urlencoded form)
GET    /messages/conversations        -- conversation list
GET    /messages/conversation/{id}    -- one conversation page (marks read)
PUT    /messages/mark-read            -- mark specific messages read
GET    /messages/unread-count         -- unread total
POST   /messages/typing               -- typing indicator
DELETE /messages/{id}                 -- delete own message

Every handler runs the controller, then schedules the returned events for
fan-out once the response has been sent.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from parley.db.models import User
from parley.db.session import get_session
from parley.messaging.attachments import AttachmentStore, IncomingFile
from parley.messaging.controller import DEFAULT_PAGE_SIZE, MessageController
from parley.messaging.events import Event
from parley.server.auth import verify_token_http
from parley.server.models import MarkReadRequest, TypingRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def _controller(request: Request, session: AsyncSession) -> MessageController:
    return MessageController(session, request.app.state.attachments)


def _dispatch(request: Request, background_tasks: BackgroundTasks, events: list[Event]) -> None:
    if events:
        background_tasks.add_task(request.app.state.dispatcher.dispatch, events)


async def read_uploads(
    store: AttachmentStore, uploads: list[UploadFile] | None
) -> list[IncomingFile]:
    """Buffer uploads, reading at most one byte past *store*'s size cap."""
    limit = store.max_bytes + 1
    files: list[IncomingFile] = []
    for upload in uploads or []:
        if not upload.filename:
            continue
        data = await upload.read(limit)
        await upload.close()
        files.append(
            IncomingFile(
                filename=upload.filename,
                content_type=(upload.content_type or "").lower(),
                data=data,
            )
        )
    return files


@router.post("", status_code=201)
async def send_message(
    request: Request,
    background_tasks: BackgroundTasks,
    receiver: str | None = Form(default=None),
    content: str | None = Form(default=None),
    message_type: str | None = Form(default="text", alias="messageType"),
    attachments: list[UploadFile] | None = File(default=None),
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Send a message, optionally with image/PDF attachments."""
    files = await read_uploads(request.app.state.attachments, attachments)
    outcome = await _controller(request, session).send_message(
        user.id, receiver, content, files, message_type
    )
    _dispatch(request, background_tasks, outcome.events)
    return {
        "success": True,
        "data": outcome.result.dump(),
        "message": "Message sent successfully",
    }


@router.get("/conversations")
async def list_conversations(
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    outcome = await _controller(request, session).list_conversations(user.id)
    return {"success": True, "data": [row.dump() for row in outcome.result]}


@router.get("/conversation/{user_id}")
async def get_conversation(
    user_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=500),
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Fetch a conversation page. Viewing marks the peer's messages read."""
    outcome = await _controller(request, session).get_conversation(user.id, user_id, page, limit)
    _dispatch(request, background_tasks, outcome.events)
    return {"success": True, "data": outcome.result.dump()}


@router.put("/mark-read")
async def mark_read(
    body: MarkReadRequest,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    outcome = await _controller(request, session).mark_read(user.id, body.message_ids)
    return {
        "success": True,
        "message": f"Marked {outcome.result} messages as read",
        "modifiedCount": outcome.result,
    }


@router.get("/unread-count")
async def unread_count(
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    outcome = await _controller(request, session).get_unread_count(user.id)
    return {"success": True, "data": {"unreadCount": outcome.result}}


@router.post("/typing")
async def typing_indicator(
    body: TypingRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    outcome = await _controller(request, session).send_typing_indicator(
        user.id, body.receiver_id, body.is_typing, user_name=user.name
    )
    _dispatch(request, background_tasks, outcome.events)
    return {
        "success": True,
        "message": "Typing indicator sent" if body.is_typing else "Typing indicator stopped",
    }


@router.delete("/{message_id}")
async def delete_message(
    message_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Delete one of your own messages; the receiver is notified."""
    outcome = await _controller(request, session).delete_message(user.id, message_id)
    _dispatch(request, background_tasks, outcome.events)
    return {
        "success": True,
        "message": "Message deleted successfully",
        "data": outcome.result.dump(),
    }
