"""
bbb_activity.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Liveness (`/healthz`) with the service name and version.
- Readiness (`/readyz`): the module tables answer a query.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity import __version__
from bbb_activity.api.deps import db_session, settings_dep
from bbb_activity.db.models import ActivityInstance
from bbb_activity.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz(settings: Settings = Depends(settings_dep)) -> dict[str, str]:
    return {"status": "ok", "service": settings.service_name, "version": __version__}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    # The conferencing server is not probed; it is reached per request and may be down.
    instances = await session.scalar(select(func.count()).select_from(ActivityInstance))
    return {"status": "ready", "instances": instances or 0}
