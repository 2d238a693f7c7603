"""
bbb_activity.db.repositories.instances

Repository for activity instances and their course module.

Responsibilities:
- Load the joined course / course-module / instance rows by instance id or cmid.
- Create instances together with their course module.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.db.models import MODULE_NAME, ActivityInstance, Course, CourseModule


@dataclass(frozen=True, slots=True)
class InstanceRow:
    course: Course
    cm: CourseModule
    instance: ActivityInstance


def _joined() -> Select[tuple[Course, CourseModule, ActivityInstance]]:
    return (
        select(Course, CourseModule, ActivityInstance)
        .join(Course, Course.id == CourseModule.course_id)
        .join(ActivityInstance, ActivityInstance.id == CourseModule.instance_id)
        .where(CourseModule.module == MODULE_NAME)
    )


class InstanceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_instance_id(self, instance_id: int) -> InstanceRow | None:
        stmt = _joined().where(ActivityInstance.id == instance_id)
        row = (await self._session.execute(stmt)).one_or_none()
        return InstanceRow(*row) if row is not None else None

    async def get_by_cmid(self, cmid: int) -> InstanceRow | None:
        stmt = _joined().where(CourseModule.id == cmid)
        row = (await self._session.execute(stmt)).one_or_none()
        return InstanceRow(*row) if row is not None else None

    async def list_for_course(self, course_id: int) -> list[InstanceRow]:
        stmt = _joined().where(Course.id == course_id).order_by(CourseModule.id)
        return [InstanceRow(*row) for row in (await self._session.execute(stmt)).all()]

    async def create(self, *, course_id: int, fields: dict[str, Any]) -> InstanceRow:
        instance = ActivityInstance(course_id=course_id, **fields)
        self._session.add(instance)
        await self._session.flush()

        cm = CourseModule(course_id=course_id, module=MODULE_NAME, instance_id=instance.id)
        self._session.add(cm)
        await self._session.flush()

        course = await self._session.get(Course, course_id)
        assert course is not None
        return InstanceRow(course=course, cm=cm, instance=instance)
