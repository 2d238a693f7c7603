"""
bbb_activity.db.repositories.logs

Repository for `LogEvent` entities.

Responsibilities:
- Append activity log entries (joins, recording actions, broker callbacks).
- Query import links, which are stored as `Import` log entries.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.db.models import LogEvent, LogType


class LogRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        course_id: int,
        instance_id: int,
        user_id: str,
        meeting_id: str,
        log: LogType,
        meta: dict[str, Any] | None = None,
    ) -> LogEvent:
        ev = LogEvent(
            course_id=course_id,
            instance_id=instance_id,
            user_id=user_id,
            meeting_id=meeting_id,
            log=log,
            meta=meta or {},
        )
        self._session.add(ev)
        await self._session.flush()
        return ev

    async def list_for_instance(
        self, instance_id: int, *, log: LogType | None = None, limit: int | None = 200
    ) -> list[LogEvent]:
        stmt = select(LogEvent).where(LogEvent.instance_id == instance_id)
        if log is not None:
            stmt = stmt.where(LogEvent.log == log)
        stmt = stmt.order_by(desc(LogEvent.created_at), desc(LogEvent.id))
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def imported_recordings(self, instance_id: int) -> list[dict[str, Any]]:
        events = await self._import_events(instance_id)
        return [ev.meta["recording"] for ev in events if "recording" in ev.meta]

    async def remove_import(self, *, instance_id: int, recording_id: str) -> int:
        ids = [ev.id for ev in await self._import_events(instance_id, recording_id)]
        if ids:
            await self._session.execute(delete(LogEvent).where(LogEvent.id.in_(ids)))
        return len(ids)

    async def update_import(self, *, instance_id: int, recording: dict[str, Any]) -> int:
        """
        Replace the recording snapshot stored in an import link.

        Returns the number of links updated.
        """

        events = await self._import_events(instance_id, str(recording["record_id"]))
        for ev in events:
            # JSON columns only pick up reassignment, not in-place mutation.
            ev.meta = {**ev.meta, "recording": recording}
        if events:
            await self._session.flush()
        return len(events)

    async def _import_events(
        self, instance_id: int, recording_id: str | None = None
    ) -> list[LogEvent]:
        # JSON path queries differ per backend; filter the import links in Python.
        events = await self.list_for_instance(instance_id, log=LogType.import_, limit=None)
        if recording_id is None:
            return events
        return [ev for ev in events if ev.meta.get("recording", {}).get("record_id") == recording_id]


# --- Module Notes -----------------------------------------------------------
# Apart from import links (which a manager may remove or adjust), log entries are append-only.
