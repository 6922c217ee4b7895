"""User directory endpoints.

POST /users/register -- create a user and issue a bearer token
GET  /users/me       -- caller's profile
PUT  /users/me       -- update name / avatar
GET  /users/{id}     -- public profile
"""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from parley.db.crud.users import create_user, get_user_by_email, get_user_by_id, update_user
from parley.db.models import User
from parley.db.session import get_session
from parley.messaging.schemas import UserProfile
from parley.server.auth import verify_token_http
from parley.server.models import ProfileUpdateRequest, RegisterRequest

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest, session: AsyncSession = Depends(get_session)
) -> dict[str, Any]:
    """Register a user. The returned token authenticates HTTP and WebSocket calls."""
    if await get_user_by_email(session, body.email) is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    token = secrets.token_urlsafe(32)
    user = await create_user(
        session, body.name.strip(), body.email, token, avatar_url=body.avatar_url
    )
    return {
        "success": True,
        "data": {"user": UserProfile.from_user(user, user.id).dump(), "token": token},
    }


@router.get("/me")
async def me(user: User = Depends(verify_token_http)) -> dict[str, Any]:
    return {"success": True, "data": UserProfile.from_user(user, user.id).dump()}


@router.put("/me")
async def update_me(
    body: ProfileUpdateRequest,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_none=True)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    updated = await update_user(session, user.id, **changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": UserProfile.from_user(updated, updated.id).dump()}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    _: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": UserProfile.from_user(user, user.id).dump()}
