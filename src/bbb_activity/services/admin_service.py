"""
bbb_activity.services.admin_service

Course and activity administration.

Responsibilities:
- Create courses and course groups (site administrators).
- Add activity instances to a course, generating the meeting id and passwords.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.auth.capabilities import CAP_ADDINSTANCE, CAP_VIEW, require_capability
from bbb_activity.auth.models import Principal
from bbb_activity.db.models import Course, CourseGroup
from bbb_activity.db.repositories.courses import CourseRepo
from bbb_activity.db.repositories.instances import InstanceRepo, InstanceRow
from bbb_activity.errors import CourseNotFound
from bbb_activity.observability.logging import get_logger
from bbb_activity.settings import Settings

log = get_logger(__name__)

PASSWORD_LENGTH = 12


def generate_meeting_id(settings: Settings) -> str:
    seed = f"{settings.wwwroot}{settings.shared_secret}{secrets.token_hex(8)}"
    return hashlib.sha1(seed.encode()).hexdigest()


def generate_password() -> str:
    return secrets.token_urlsafe(PASSWORD_LENGTH)[:PASSWORD_LENGTH]


class AdminService:
    def __init__(self, *, session: AsyncSession, settings: Settings, principal: Principal) -> None:
        self._session = session
        self._settings = settings
        self._principal = principal
        self._courses = CourseRepo(session)
        self._instances = InstanceRepo(session)

    async def create_course(self, *, fullname: str, shortname: str = "") -> Course:
        course = await self._courses.create(fullname=fullname, shortname=shortname)
        await self._session.commit()
        log.info("course_created", course_id=course.id)
        return course

    async def add_group(self, *, course_id: int, name: str) -> CourseGroup:
        if await self._courses.get(course_id) is None:
            raise CourseNotFound()
        group = await self._courses.add_group(course_id=course_id, name=name)
        await self._session.commit()
        return group

    async def add_instance(self, *, course_id: int, fields: dict[str, Any]) -> InstanceRow:
        if await self._courses.get(course_id) is None:
            raise CourseNotFound()
        require_capability(self._principal, CAP_ADDINSTANCE, course_id=course_id)

        values = dict(fields)
        values["meetingid"] = generate_meeting_id(self._settings)
        values["moderatorpass"] = generate_password()
        values["viewerpass"] = generate_password()
        row = await self._instances.create(course_id=course_id, fields=values)
        await self._session.commit()
        log.info("instance_created", course_id=course_id, instance_id=row.instance.id, cmid=row.cm.id)
        return row

    async def list_instances(self, *, course_id: int) -> list[InstanceRow]:
        require_capability(self._principal, CAP_VIEW, course_id=course_id)
        return await self._instances.list_for_course(course_id)
