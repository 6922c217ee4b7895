"""Diagnostics endpoints.

- ``GET /health`` -- liveness plus database and socket status (no auth).
- ``GET /socket-status`` -- every live channel and the rooms it joined.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from parley.db.session import get_session
from parley.server.connections import PresenceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _registry(request: Request) -> PresenceRegistry | None:
    return request.app.state.registry


@router.get("/health")
async def health(
    request: Request, session: AsyncSession = Depends(get_session)
) -> dict[str, Any]:
    database = "connected"
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check database query failed")
        database = "disconnected"

    registry = _registry(request)
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "parley",
        "database": database,
        "socketConnections": registry.connection_count if registry else 0,
        "uptime": round(time.monotonic() - request.app.state.startup_time, 2),
    }


@router.get("/socket-status")
async def socket_status(request: Request) -> dict[str, Any]:
    registry = _registry(request)
    sockets = registry.snapshot() if registry else []
    return {
        "success": True,
        "data": {"totalConnections": len(sockets), "sockets": sockets},
    }
