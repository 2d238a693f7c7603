from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.db.models import Course, CourseGroup


class CourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: int) -> Course | None:
        return await self._session.get(Course, course_id)

    async def list_all(self) -> list[Course]:
        return list((await self._session.execute(select(Course).order_by(Course.id))).scalars().all())

    async def create(self, *, fullname: str, shortname: str = "", course_id: int | None = None) -> Course:
        course = Course(id=course_id, fullname=fullname, shortname=shortname)
        self._session.add(course)
        await self._session.flush()
        return course

    async def add_group(self, *, course_id: int, name: str) -> CourseGroup:
        group = CourseGroup(course_id=course_id, name=name)
        self._session.add(group)
        await self._session.flush()
        return group

    async def group_names(self, course_id: int) -> dict[int, str]:
        stmt = select(CourseGroup.id, CourseGroup.name).where(CourseGroup.course_id == course_id)
        return {gid: name for gid, name in (await self._session.execute(stmt)).all()}
