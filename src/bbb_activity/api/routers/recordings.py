"""
bbb_activity.api.routers.recordings

Recording endpoints of one activity.

Responsibilities:
- Return the recordings table data, optionally filtered by the search text.
- Apply a recording action (delete, edit, protect, publish, unprotect, unpublish).
- Serve the batched AJAX service used by the browser table.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Body, Depends, Path, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.api.deps import conference_client, db_session, settings_dep
from bbb_activity.api.errors import domain_errors
from bbb_activity.auth.deps import get_principal
from bbb_activity.auth.models import Principal
from bbb_activity.conference.client import ConferenceClient
from bbb_activity.recordings import table
from bbb_activity.services.external import ALPHANUMEXT, RecordingOptions, ServiceCall, execute_batch
from bbb_activity.services.recording_service import RecordingService
from bbb_activity.settings import Settings

router = APIRouter(prefix="/v1", tags=["recordings"])


class RecordingActionRequest(BaseModel):
    options: RecordingOptions | None = None


def recording_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    client: ConferenceClient = Depends(conference_client),
    principal: Principal = Depends(get_principal),
) -> RecordingService:
    return RecordingService(session=session, settings=settings, client=client, principal=principal)


@router.get("/instances/{instance_id}/recordings")
async def list_recordings(
    instance_id: int,
    search: str = Query(default="", max_length=256),
    svc: RecordingService = Depends(recording_service),
) -> dict[str, Any]:
    with domain_errors():
        result = await svc.list_table(instance_id=instance_id)
    if search:
        tabledata = result["tabledata"]
        tabledata["data"] = json.dumps(table.filter_rows(json.loads(tabledata["data"]), search))
    return result


@router.post("/instances/{instance_id}/recordings/{recording_id}/{action}")
async def update_recording(
    instance_id: int,
    recording_id: str = Path(pattern=ALPHANUMEXT, max_length=256),
    action: str = Path(max_length=32),
    body: RecordingActionRequest | None = Body(default=None),
    svc: RecordingService = Depends(recording_service),
) -> dict[str, Any]:
    with domain_errors():
        return await svc.update_recording(
            instance_id=instance_id,
            recording_id=recording_id,
            action=action,
            options=body.options.model_dump(exclude_none=True) if body and body.options else None,
        )


@router.post("/service")
async def service(
    calls: list[ServiceCall],
    svc: RecordingService = Depends(recording_service),
) -> list[dict[str, Any]]:
    return await execute_batch(svc, calls)
