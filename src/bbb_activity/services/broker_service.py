"""
bbb_activity.services.broker_service

Callbacks sent by the conferencing server.

Responsibilities:
- Validate `recording_ready` and `meeting_events` callbacks for one instance.
- Record them in the activity log.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.auth.jwt import JwtValidationError
from bbb_activity.conference.broker import meeting_events_summary, recording_ready_parameters
from bbb_activity.db.models import LogType
from bbb_activity.db.repositories.instances import InstanceRepo, InstanceRow
from bbb_activity.db.repositories.logs import LogRepo
from bbb_activity.errors import InstanceNotFound
from bbb_activity.observability.logging import get_logger
from bbb_activity.settings import Settings

log = get_logger(__name__)

# Callbacks are not issued on behalf of a user.
SERVER_USER = "0"


def _base_meeting_id(row: InstanceRow) -> str:
    return f"{row.instance.meetingid}-{row.course.id}-{row.instance.id}"


def _belongs_to(row: InstanceRow, meeting_id: str | None) -> bool:
    # Group meetings carry a `[groupid]` suffix after the base id.
    base = _base_meeting_id(row)
    return bool(meeting_id) and (meeting_id == base or meeting_id.startswith(f"{base}["))


class BrokerService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._instances = InstanceRepo(session)
        self._logs = LogRepo(session)

    async def _row(self, instance_id: int) -> InstanceRow:
        row = await self._instances.get_by_instance_id(instance_id)
        if row is None:
            raise InstanceNotFound()
        return row

    async def recording_ready(self, *, instance_id: int, signed_parameters: str) -> dict[str, str]:
        row = await self._row(instance_id)
        params = recording_ready_parameters(
            secret=self._settings.shared_secret, signed_parameters=signed_parameters
        )
        if not _belongs_to(row, params["meeting_id"]):
            raise JwtValidationError("meeting_id does not belong to this activity")

        await self._logs.add(
            course_id=row.course.id,
            instance_id=row.instance.id,
            user_id=SERVER_USER,
            meeting_id=params["meeting_id"],
            log=LogType.recording_ready,
            meta={"recordingid": params["record_id"]},
        )
        await self._session.commit()
        log.info("recording_ready", instance_id=instance_id, recording_id=params["record_id"])
        return params

    async def meeting_events(
        self, *, instance_id: int, token: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        row = await self._row(instance_id)
        summary = meeting_events_summary(
            secret=self._settings.shared_secret, token=token, payload=payload
        )
        if not _belongs_to(row, summary["external_meeting_id"]):
            raise JwtValidationError("external-meeting-id does not belong to this activity")

        await self._logs.add(
            course_id=row.course.id,
            instance_id=row.instance.id,
            user_id=SERVER_USER,
            meeting_id=str(summary["external_meeting_id"]),
            log=LogType.meeting_events,
            meta=summary,
        )
        await self._session.commit()
        log.info(
            "meeting_events",
            instance_id=instance_id,
            attendees=len(summary["attendees"]),
        )
        return summary
