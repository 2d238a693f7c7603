"""
bbb_activity.api.routers.views

Activity pages and redirects under `/mod/bigbluebuttonbn`.

Responsibilities:
- `view`: the activity's view state for the caller.
- `bbb_view`: join (redirect to the conferencing server) and logout (back to `view`).
- `recordings`: server-rendered recordings table with search and action forms.
- `import_view`: pick a course and import recordings from its activities.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.api.deps import conference_client, db_session, settings_dep
from bbb_activity.api.errors import domain_errors
from bbb_activity.api.routers.recordings import recording_service
from bbb_activity.auth.capabilities import CAP_VIEW, require_capability
from bbb_activity.auth.deps import get_principal
from bbb_activity.auth.models import Principal
from bbb_activity.conference.client import ConferenceClient, Recording
from bbb_activity.domain.instance import MODULE_PATH
from bbb_activity.lang import get_string
from bbb_activity.recordings import table
from bbb_activity.services.instance_service import InstanceService, view_state
from bbb_activity.services.meeting_service import MeetingService
from bbb_activity.services.recording_service import RecordingService
from bbb_activity.settings import Settings

router = APIRouter(prefix=MODULE_PATH, tags=["views"])

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))
templates.env.globals["get_string"] = get_string


def instance_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    client: ConferenceClient = Depends(conference_client),
    principal: Principal = Depends(get_principal),
) -> InstanceService:
    return InstanceService(session=session, settings=settings, client=client, principal=principal)


def meeting_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    client: ConferenceClient = Depends(conference_client),
    principal: Principal = Depends(get_principal),
) -> MeetingService:
    return MeetingService(session=session, settings=settings, client=client, principal=principal)


def _page(page: str, **params: Any) -> str:
    query = urlencode({k: v for k, v in params.items() if v not in (None, "")})
    return f"{MODULE_PATH}/{page}?{query}"


@router.get("/view")
async def view(
    id: int = Query(ge=1),
    group: int | None = Query(default=None, ge=0),
    svc: InstanceService = Depends(instance_service),
    principal: Principal = Depends(get_principal),
) -> dict[str, Any]:
    with domain_errors():
        bundle = await svc.get_session_from_cmid(id, group_id=group)
        require_capability(principal, CAP_VIEW, course_id=bundle.instance.get_course_id())
    return view_state(bundle)


@router.get("/bbb_view")
async def bbb_view(
    action: Literal["join", "logout"],
    id: int = Query(ge=1),
    group: int | None = Query(default=None, ge=0),
    svc: MeetingService = Depends(meeting_service),
) -> RedirectResponse:
    with domain_errors():
        if action == "join":
            target = await svc.join(cmid=id, group_id=group)
        else:
            target = await svc.logout(cmid=id)
    return RedirectResponse(target, status_code=303)


@router.get("/recordings", response_class=HTMLResponse)
async def recordings_page(
    request: Request,
    bn: int = Query(ge=1),
    search: str = Query(default="", max_length=256),
    svc: RecordingService = Depends(recording_service),
    instances: InstanceService = Depends(instance_service),
    principal: Principal = Depends(get_principal),
) -> Any:
    with domain_errors():
        bundle = await instances.get_session_from_id(bn)
        require_capability(principal, CAP_VIEW, course_id=bundle.instance.get_course_id())
        recordings = await svc.get_recordings_for_table_view(bundle)

    managerecordings = bundle.bbbsession["managerecordings"]
    rows = table.filter_rows(table.build_rows(recordings, managerecordings=managerecordings), search)
    actions = {r.record_id: table.available_actions(r) for r in recordings}
    return templates.TemplateResponse(
        request,
        "recordings.html",
        {
            "activity": bundle.instance.get_meeting_name(),
            "bn": bn,
            "search": search,
            "columns": table.columns(managerecordings=managerecordings),
            "rows": rows,
            "actions": actions,
            "managerecordings": managerecordings,
            "import_url": _page("import_view", bn=bn)
            if bundle.enabled_features["importrecordings"] and managerecordings
            else None,
        },
    )


@router.post("/recordings")
async def recordings_action(
    bn: int = Form(ge=1),
    recordingid: str = Form(max_length=256),
    action: str = Form(max_length=32),
    search: str = Form(default="", max_length=256),
    name: str | None = Form(default=None),
    description: str | None = Form(default=None),
    svc: RecordingService = Depends(recording_service),
) -> RedirectResponse:
    options: dict[str, Any] | None = None
    if action == "edit":
        meta = {k: v for k, v in (("name", name), ("description", description)) if v is not None}
        options = {"meta": meta}
    with domain_errors():
        await svc.update_recording(
            instance_id=bn, recording_id=recordingid, action=action, options=options
        )
    return RedirectResponse(_page("recordings", bn=bn, search=search), status_code=303)


@router.get("/import_view", response_class=HTMLResponse)
async def import_view(
    request: Request,
    bn: int = Query(ge=1),
    tc: int | None = Query(default=None, ge=1),
    svc: RecordingService = Depends(recording_service),
) -> Any:
    recordings: list[Recording] = []
    with domain_errors():
        if tc is not None:
            bundle, recordings = await svc.importable_recordings(instance_id=bn, source_course_id=tc)
        else:
            bundle = await svc.import_bundle(instance_id=bn)
    rows = table.build_rows(recordings, managerecordings=False)
    return templates.TemplateResponse(
        request,
        "import_view.html",
        {
            "activity": bundle.instance.get_meeting_name(),
            "bn": bn,
            "tc": tc,
            "courses": await svc.import_sources(),
            "rows": rows,
            "back_url": _page("recordings", bn=bn),
        },
    )


@router.post("/import_view")
async def import_view_submit(
    bn: int = Form(ge=1),
    tc: int | None = Form(default=None, ge=1),
    recordingid: str | None = Form(default=None, max_length=256),
    svc: RecordingService = Depends(recording_service),
) -> RedirectResponse:
    if recordingid and tc is not None:
        with domain_errors():
            await svc.import_recording(instance_id=bn, source_course_id=tc, recording_id=recordingid)
    return RedirectResponse(_page("import_view", bn=bn, tc=tc), status_code=303)
