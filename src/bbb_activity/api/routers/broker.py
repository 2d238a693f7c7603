"""
bbb_activity.api.routers.broker

Callback endpoint for the conferencing server (`bbb_broker`).

Responsibilities:
- `recording_ready`: accept the server's signed parameters for a new recording.
- `meeting_events`: accept the server's attendance summary for a finished meeting.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_401_UNAUTHORIZED

from bbb_activity.api.deps import db_session, settings_dep
from bbb_activity.api.errors import domain_errors
from bbb_activity.domain.instance import MODULE_PATH
from bbb_activity.services.broker_service import BrokerService
from bbb_activity.settings import Settings

router = APIRouter(prefix=MODULE_PATH, tags=["broker"])


def broker_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> BrokerService:
    return BrokerService(session=session, settings=settings)


@router.api_route("/bbb_broker", methods=["GET", "POST"])
async def bbb_broker(
    request: Request,
    action: Literal["recording_ready", "meeting_events"],
    bigbluebuttonbn: int = Query(ge=1),
    signed_parameters: str | None = Query(default=None),
    authorization: str | None = Header(default=None),
    svc: BrokerService = Depends(broker_service),
) -> dict[str, Any]:
    if action == "recording_ready":
        if signed_parameters is None:
            # The server posts the parameters as a form field.
            form = await request.form()
            signed_parameters = str(form.get("signed_parameters") or "") or None
        if not signed_parameters:
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Missing signed_parameters")
        with domain_errors():
            params = await svc.recording_ready(
                instance_id=bigbluebuttonbn, signed_parameters=signed_parameters
            )
        return {"status": "ok", **params}

    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        payload = await request.json()
    except ValueError as e:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid JSON payload") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")
    with domain_errors():
        summary = await svc.meeting_events(
            instance_id=bigbluebuttonbn,
            token=authorization.split(" ", 1)[1].strip(),
            payload=payload,
        )
    return {"status": "ok", "attendees": len(summary["attendees"])}
