"""
bbb_activity.services.recording_service

Recording list and recording actions for one activity.

Responsibilities:
- Collect the recordings shown in the table view (own meetings, group meetings, imports).
- Serve the `list_table` and `update_recording` remote procedures.
- List and import recordings from other activities.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.auth.capabilities import (
    CAP_MANAGERECORDINGS,
    CAP_VIEW,
    has_capability,
    require_capability,
)
from bbb_activity.auth.models import Principal
from bbb_activity.conference.broker import RecordingAction, RecordingBroker
from bbb_activity.conference.client import ConferenceClient, Recording
from bbb_activity.db.models import Course, LogType
from bbb_activity.db.repositories.courses import CourseRepo
from bbb_activity.db.repositories.instances import InstanceRepo
from bbb_activity.db.repositories.logs import LogRepo
from bbb_activity.domain.instance import Instance
from bbb_activity.errors import RecordingNotFound, RequiredCapabilityError
from bbb_activity.observability.logging import get_logger
from bbb_activity.recordings import table
from bbb_activity.services.instance_service import InstanceService, SessionBundle
from bbb_activity.settings import Settings

log = get_logger(__name__)


class RecordingService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        client: ConferenceClient,
        principal: Principal,
    ) -> None:
        self._session = session
        self._settings = settings
        self._client = client
        self._principal = principal

        self._instances = InstanceService(
            session=session, settings=settings, client=client, principal=principal
        )
        self._logs = LogRepo(session)
        self._broker = RecordingBroker(client=client, logs=self._logs)

    async def _meeting_ids(self, instance: Instance) -> list[str]:
        # Recordings of group sessions carry the group suffix in their meeting id.
        groups = await CourseRepo(self._session).group_names(instance.get_course_id())
        ids = [instance.get_meeting_id(groupid=None), instance.get_meeting_id(groupid=0)]
        ids += [instance.get_meeting_id(groupid=gid) for gid in sorted(groups)]
        return ids

    async def get_recordings_for_table_view(self, bundle: SessionBundle) -> list[Recording]:
        if not bundle.enabled_features["showrecordings"]:
            return []
        instance = bundle.instance
        recordings = await self._client.get_recordings(await self._meeting_ids(instance))

        if bundle.enabled_features["importrecordings"]:
            seen = {r.record_id for r in recordings}
            for data in await self._logs.imported_recordings(instance.get_instance_id()):
                imported = Recording.from_dict(data)
                imported.imported = True
                if imported.record_id not in seen:
                    recordings.append(imported)
                    seen.add(imported.record_id)

        if not bundle.bbbsession["managerecordings"]:
            recordings = [r for r in recordings if r.published]
        return recordings

    async def table_rows(self, bundle: SessionBundle) -> list[dict[str, Any]]:
        recordings = await self.get_recordings_for_table_view(bundle)
        return table.build_rows(recordings, managerecordings=bundle.bbbsession["managerecordings"])

    async def list_table(self, *, instance_id: int) -> dict[str, Any]:
        bundle = await self._instances.get_session_from_id(instance_id)
        require_capability(self._principal, CAP_VIEW, course_id=bundle.instance.get_course_id())
        return table.table_data(
            activity=bundle.instance.get_meeting_name(),
            rows=await self.table_rows(bundle),
            profile_features=bundle.profile_features,
            managerecordings=bundle.bbbsession["managerecordings"],
            locale=self._settings.locale,
            ping_interval=self._settings.ping_interval,
        )

    async def update_recording(
        self,
        *,
        instance_id: int,
        recording_id: str,
        action: str,
        options: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        # Unknown actions fail before any storage or network access.
        verb = RecordingAction.parse(action)

        bundle = await self._instances.get_session_from_id(instance_id)
        instance = bundle.instance
        course_id = instance.get_course_id()
        require_capability(self._principal, CAP_VIEW, course_id=course_id)
        require_capability(self._principal, CAP_MANAGERECORDINGS, course_id=course_id)

        recordings = await self.get_recordings_for_table_view(bundle)
        params: dict[str, Any] = {"id": recording_id}
        if options and "meta" in options:
            params["meta"] = options["meta"]
        recording = await self._broker.recording_action_perform(
            verb.broker_action, params, recordings, instance_id=instance.get_instance_id()
        )

        await self._logs.add(
            course_id=course_id,
            instance_id=instance.get_instance_id(),
            user_id=self._principal.subject,
            meeting_id=recording.meeting_id,
            log=LogType[verb.value],
            meta={"recordingid": recording_id, "imported": recording.imported},
        )
        await self._session.commit()
        return {}

    async def import_bundle(self, *, instance_id: int) -> SessionBundle:
        bundle = await self._instances.get_session_from_id(instance_id)
        if not bundle.enabled_features["importrecordings"]:
            raise RequiredCapabilityError(CAP_MANAGERECORDINGS)
        require_capability(
            self._principal, CAP_MANAGERECORDINGS, course_id=bundle.instance.get_course_id()
        )
        return bundle

    async def import_sources(self) -> list[Course]:
        courses = await CourseRepo(self._session).list_all()
        return [
            c for c in courses
            if has_capability(self._principal, CAP_MANAGERECORDINGS, course_id=c.id)
        ]

    async def importable_recordings(
        self, *, instance_id: int, source_course_id: int
    ) -> tuple[SessionBundle, list[Recording]]:
        bundle = await self.import_bundle(instance_id=instance_id)
        # Recordings are only listed from courses where the caller manages them too.
        require_capability(self._principal, CAP_MANAGERECORDINGS, course_id=source_course_id)
        instance = bundle.instance

        meeting_ids: list[str] = []
        for row in await InstanceRepo(self._session).list_for_course(source_course_id):
            if row.instance.id == instance.get_instance_id():
                continue
            source = Instance.from_row(row, principal=self._principal, settings=self._settings)
            meeting_ids += await self._meeting_ids(source)
        if not meeting_ids:
            return bundle, []

        already = {r.record_id for r in await self.get_recordings_for_table_view(bundle)}
        recordings = [r for r in await self._client.get_recordings(meeting_ids) if r.record_id not in already]
        return bundle, recordings

    async def import_recording(
        self, *, instance_id: int, source_course_id: int, recording_id: str
    ) -> None:
        bundle, candidates = await self.importable_recordings(
            instance_id=instance_id, source_course_id=source_course_id
        )
        recording = next((r for r in candidates if r.record_id == recording_id), None)
        if recording is None:
            raise RecordingNotFound(recording_id)

        instance = bundle.instance
        await self._logs.add(
            course_id=instance.get_course_id(),
            instance_id=instance.get_instance_id(),
            user_id=self._principal.subject,
            meeting_id=recording.meeting_id,
            log=LogType.import_,
            meta={"recording": recording.to_dict(), "source_course_id": source_course_id},
        )
        await self._session.commit()
        log.info("recording_imported", recording_id=recording_id, source_course_id=source_course_id)


# --- Module Notes -----------------------------------------------------------
# The RPC returns an empty payload; clients refresh through `list_table` in the
# same batch (see `services.external`).
