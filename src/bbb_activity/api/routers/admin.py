"""
bbb_activity.api.routers.admin

Course and activity administration endpoints.

Responsibilities:
- Create courses and groups (site administrators).
- Add activity instances to a course and list them.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from bbb_activity.api.deps import db_session, settings_dep
from bbb_activity.api.errors import domain_errors
from bbb_activity.auth.deps import get_principal, require_roles
from bbb_activity.auth.models import Principal
from bbb_activity.db.models import InstanceType
from bbb_activity.db.repositories.instances import InstanceRow
from bbb_activity.services.admin_service import AdminService
from bbb_activity.settings import Settings

router = APIRouter(prefix="/v1", tags=["admin"])


class CourseCreateRequest(BaseModel):
    fullname: str = Field(min_length=1, max_length=254)
    shortname: str = Field(default="", max_length=255)


class CourseResponse(BaseModel):
    id: int
    fullname: str
    shortname: str


class GroupCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=254)


class GroupResponse(BaseModel):
    id: int
    course_id: int
    name: str


class ParticipantRule(BaseModel):
    selectiontype: Literal["all", "role", "user"]
    selectionid: str = Field(min_length=1, max_length=256)
    role: Literal["viewer", "moderator"] = "viewer"


class InstanceCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    intro: str | None = None
    type: InstanceType = InstanceType.all
    wait: bool = False
    record: bool = True
    recordallfromstart: bool = False
    recordhidebutton: bool = False
    welcome: str | None = None
    voicebridge: int = Field(default=0, ge=0, le=9999)
    openingtime: int = Field(default=0, ge=0)
    closingtime: int = Field(default=0, ge=0)
    userlimit: int = Field(default=0, ge=0)
    presentation: str | None = Field(default=None, max_length=255)
    participants: list[ParticipantRule] | None = None
    muteonstart: bool = False
    disablecam: bool = False
    disablemic: bool = False
    disableprivatechat: bool = False
    disablepublicchat: bool = False
    disablenote: bool = False
    hideuserlist: bool = False
    lockedlayout: bool = False
    lockonjoin: bool = False
    lockonjoinconfigurable: bool = False

    @model_validator(mode="after")
    def _opening_before_closing(self) -> InstanceCreateRequest:
        if self.openingtime and self.closingtime and self.closingtime <= self.openingtime:
            raise ValueError("closingtime must be after openingtime")
        return self


class InstanceResponse(BaseModel):
    id: int
    cmid: int
    course_id: int
    name: str
    type: int
    meetingid: str
    openingtime: int
    closingtime: int


def _instance_response(row: InstanceRow) -> InstanceResponse:
    # Passwords stay server-side.
    return InstanceResponse(
        id=row.instance.id,
        cmid=row.cm.id,
        course_id=row.course.id,
        name=row.instance.name,
        type=row.instance.type,
        meetingid=row.instance.meetingid,
        openingtime=row.instance.openingtime,
        closingtime=row.instance.closingtime,
    )


def _service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    principal: Principal = Depends(get_principal),
) -> AdminService:
    return AdminService(session=session, settings=settings, principal=principal)


@router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_roles("admin"))],
)
async def create_course(
    body: CourseCreateRequest, svc: AdminService = Depends(_service)
) -> CourseResponse:
    course = await svc.create_course(fullname=body.fullname, shortname=body.shortname)
    return CourseResponse(id=course.id, fullname=course.fullname, shortname=course.shortname)


@router.post(
    "/courses/{course_id}/groups",
    response_model=GroupResponse,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_roles("admin"))],
)
async def create_group(
    course_id: int, body: GroupCreateRequest, svc: AdminService = Depends(_service)
) -> GroupResponse:
    with domain_errors():
        group = await svc.add_group(course_id=course_id, name=body.name)
    return GroupResponse(id=group.id, course_id=group.course_id, name=group.name)


@router.post("/courses/{course_id}/instances", response_model=InstanceResponse, status_code=HTTP_201_CREATED)
async def create_instance(
    course_id: int, body: InstanceCreateRequest, svc: AdminService = Depends(_service)
) -> InstanceResponse:
    fields: dict[str, Any] = body.model_dump(exclude={"participants"})
    fields["type"] = int(body.type)
    if body.participants is not None:
        fields["participants"] = [p.model_dump() for p in body.participants]
    with domain_errors():
        row = await svc.add_instance(course_id=course_id, fields=fields)
    return _instance_response(row)


@router.get("/courses/{course_id}/instances", response_model=list[InstanceResponse])
async def list_instances(course_id: int, svc: AdminService = Depends(_service)) -> list[InstanceResponse]:
    with domain_errors():
        rows = await svc.list_instances(course_id=course_id)
    return [_instance_response(r) for r in rows]
