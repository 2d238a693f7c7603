"""
bbb_activity.api.app

FastAPI app factory for the activity service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine/session factory, the
  pooled HTTP client towards the conferencing server).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from bbb_activity import __version__
from bbb_activity.api.routers.admin import router as admin_router
from bbb_activity.api.routers.broker import router as broker_router
from bbb_activity.api.routers.dev_auth import router as dev_auth_router
from bbb_activity.api.routers.health import router as health_router
from bbb_activity.api.routers.recordings import router as recordings_router
from bbb_activity.api.routers.views import router as views_router
from bbb_activity.db.init_db import init_db
from bbb_activity.db.session import create_engine, create_sessionmaker
from bbb_activity.observability.logging import configure_logging, get_logger
from bbb_activity.observability.middleware import RequestContextMiddleware
from bbb_activity.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    conference_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    `conference_transport` replaces the network transport of the conferencing
    client (tests pass an `httpx.MockTransport`).
    """

    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, server_url=settings.server_url)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        app.state.conference_http = httpx.AsyncClient(
            timeout=settings.server_timeout, transport=conference_transport
        )
        if settings.env in ("dev", "test"):
            # Prod should use Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await app.state.conference_http.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="BigBlueButton activity",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(admin_router)
    app.include_router(recordings_router)
    app.include_router(views_router)
    app.include_router(broker_router)

    return app
