"""
bbb_activity.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions and the conferencing client.
- Encapsulate app.state access patterns (settings/sessionmaker/http client).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bbb_activity.conference.client import ConferenceClient
from bbb_activity.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The settings object passed to `create_app` wins over the env-cached one.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def conference_client(
    request: Request,
    settings: Settings = Depends(settings_dep),
) -> ConferenceClient:
    # One pooled httpx client per process, created in the app lifespan.
    return ConferenceClient(settings=settings, http=request.app.state.conference_http)
