"""Bearer-token identity for HTTP routes and WebSocket connections."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from parley.db.crud.users import get_user_by_token
from parley.db.models import User
from parley.db.session import get_session

bearer_scheme = HTTPBearer()


async def verify_token_http(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
) -> User:
    """FastAPI dependency: resolve the Bearer token to the calling user.

    Raises ``HTTPException(401)`` on an unknown token.
    """
    user = await get_user_by_token(session, credentials.credentials)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user


async def verify_token_ws(token: str) -> User | None:
    """Resolve a WebSocket ``token`` query parameter to a user.

    Does NOT raise -- the caller closes the connection itself.  Uses the
    singleton session factory since WebSocket auth runs before the
    connection is accepted.
    """
    from parley.db.engine import get_engine
    from parley.db.session import init_session_factory

    factory = init_session_factory(get_engine())
    async with factory() as session:
        return await get_user_by_token(session, token)
