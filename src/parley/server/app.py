"""FastAPI application factory for the Parley server."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.staticfiles import StaticFiles

from parley import __version__
from parley.db.engine import dispose_engine, init_engine
from parley.db.session import create_tables, init_session_factory, reset_session_factory
from parley.billing.gateway import MockPaymentGateway
from parley.messaging.attachments import IMAGE_MIME_TYPES, AttachmentStore
from parley.messaging.dispatcher import FanoutDispatcher
from parley.messaging.errors import ParleyError
from parley.server.config import Settings
from parley.server.connections import PresenceRegistry
from parley.server.heartbeat import HeartbeatManager

logger = logging.getLogger(__name__)

_STATUS_TO_ERROR = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    503: "service_unavailable",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage database, presence and heartbeat resources across app lifetime."""
    settings: Settings = app.state.settings

    engine = init_engine(settings.database_url)
    await create_tables(engine)
    init_session_factory(engine)

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.state.attachments = AttachmentStore(
        settings.upload_dir,
        url_prefix=settings.upload_url_prefix,
        max_bytes=settings.max_attachment_bytes,
    )
    app.state.item_images = AttachmentStore(
        settings.upload_dir,
        url_prefix=settings.upload_url_prefix,
        max_bytes=settings.max_attachment_bytes,
        allowed_types=IMAGE_MIME_TYPES,
        name_prefix="item",
        type_error="Invalid file type. Only images are allowed",
    )
    app.state.gateway = MockPaymentGateway()

    registry: PresenceRegistry | None = None
    heartbeat: HeartbeatManager | None = None
    if settings.realtime_enabled:
        registry = PresenceRegistry()
        heartbeat = HeartbeatManager(
            registry,
            ping_interval=settings.ping_interval,
            pong_timeout=settings.pong_timeout,
        )
        await heartbeat.start()
    else:
        logger.warning("Real-time delivery is disabled; events will be dropped")
    app.state.registry = registry
    app.state.heartbeat = heartbeat
    app.state.dispatcher = FanoutDispatcher(registry)
    app.state.startup_time = time.monotonic()

    yield

    if heartbeat is not None:
        await heartbeat.stop()
    if registry is not None:
        await registry.close()
    reset_session_factory()
    await dispose_engine()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Parley FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.debug:
        logging.getLogger("parley").setLevel(logging.DEBUG)

    app = FastAPI(title="Parley", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    # Consistent JSON error shape: {"success": false, "error": "<code>", "message": "<text>"}
    @app.exception_handler(ParleyError)
    async def parley_error_handler(request: Request, exc: ParleyError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.code, "message": exc.message},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": _STATUS_TO_ERROR.get(exc.status_code, "error"),
                "message": exc.detail,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": "validation_error", "message": str(exc)},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    from parley.server.routes.health import router as health_router
    from parley.server.routes.items import router as items_router
    from parley.server.routes.messages import router as messages_router
    from parley.server.routes.payments import router as payments_router
    from parley.server.routes.users import router as users_router
    from parley.server.ws import router as ws_router

    app.include_router(health_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(messages_router, prefix="/api")
    app.include_router(items_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(ws_router)

    app.mount(
        settings.upload_url_prefix,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    return app
