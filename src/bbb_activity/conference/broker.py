"""
bbb_activity.conference.broker

Recording action broker and server callback validation.

Responsibilities:
- Apply `recording_*` actions to one of the recordings shown in the table view.
- Act on the import link, never on the server, for recordings owned by another activity.
- Validate the signed parameters of `recording_ready` / `meeting_events` callbacks.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from bbb_activity.auth.jwt import JwtValidationError, decode_server_token
from bbb_activity.conference.client import ConferenceClient, Recording
from bbb_activity.db.repositories.logs import LogRepo
from bbb_activity.errors import RecordingNotFound, UnknownRecordingAction
from bbb_activity.observability.logging import get_logger

log = get_logger(__name__)


class RecordingAction(enum.StrEnum):
    delete = "delete"
    edit = "edit"
    protect = "protect"
    publish = "publish"
    unprotect = "unprotect"
    unpublish = "unpublish"

    @classmethod
    def parse(cls, action: str) -> RecordingAction:
        try:
            return cls(action)
        except ValueError as e:
            raise UnknownRecordingAction(action) from e

    @property
    def broker_action(self) -> str:
        return f"recording_{self.value}"

    @property
    def requires_confirmation(self) -> bool:
        return self in (RecordingAction.delete, RecordingAction.unpublish)


# Editable metadata fields and the server meta parameter each one maps to.
EDITABLE_META = {
    "name": "meta_bbb-recording-name",
    "description": "meta_bbb-recording-description",
}


class RecordingBroker:
    def __init__(self, *, client: ConferenceClient, logs: LogRepo) -> None:
        self._client = client
        self._logs = logs

    async def recording_action_perform(
        self,
        action: str,
        params: Mapping[str, Any],
        recordings: Sequence[Recording],
        *,
        instance_id: int,
    ) -> Recording:
        """
        Perform `recording_{action}` on `params["id"]`.

        Only recordings the caller can see in the table view may be touched.
        """

        if not action.startswith("recording_"):
            raise UnknownRecordingAction(action)
        verb = RecordingAction.parse(action.removeprefix("recording_"))

        recording_id = str(params.get("id", ""))
        recording = next((r for r in recordings if r.record_id == recording_id), None)
        if recording is None:
            raise RecordingNotFound(recording_id)

        if recording.imported:
            await self._apply_to_import(verb, recording, params, instance_id=instance_id)
        elif verb is RecordingAction.delete:
            await self._client.delete_recordings(recording_id)
        elif verb in (RecordingAction.publish, RecordingAction.unpublish):
            await self._client.publish_recordings(
                recording_id, publish=verb is RecordingAction.publish
            )
        elif verb in (RecordingAction.protect, RecordingAction.unprotect):
            await self._client.update_recordings(
                recording_id, {"protect": "true" if verb is RecordingAction.protect else "false"}
            )
        else:
            meta = _editable_meta(params)
            if meta:
                await self._client.update_recordings(recording_id, meta)

        log.info(
            "recording_action",
            action=verb.value,
            recording_id=recording_id,
            imported=recording.imported,
        )
        return recording

    async def _apply_to_import(
        self,
        verb: RecordingAction,
        recording: Recording,
        params: Mapping[str, Any],
        *,
        instance_id: int,
    ) -> None:
        # The recording belongs to another activity; only this activity's link changes.
        if verb is RecordingAction.delete:
            await self._logs.remove_import(instance_id=instance_id, recording_id=recording.record_id)
            return

        link = replace(recording, metadata=dict(recording.metadata), imported=False)
        if verb in (RecordingAction.publish, RecordingAction.unpublish):
            link.published = verb is RecordingAction.publish
        elif verb in (RecordingAction.protect, RecordingAction.unprotect):
            link.protected = verb is RecordingAction.protect
        else:
            link.metadata.update(
                {k.removeprefix("meta_"): v for k, v in _editable_meta(params).items()}
            )
        await self._logs.update_import(instance_id=instance_id, recording=link.to_dict())


def _editable_meta(params: Mapping[str, Any]) -> dict[str, str]:
    return {
        EDITABLE_META[k]: str(v)
        for k, v in (params.get("meta") or {}).items()
        if k in EDITABLE_META
    }


def recording_ready_parameters(*, secret: str, signed_parameters: str) -> dict[str, str]:
    """
    Decode the `signed_parameters` JWT of a recording-ready callback.

    Returns `meeting_id` and `record_id`; raises `JwtValidationError` otherwise.
    """

    claims = decode_server_token(secret=secret, token=signed_parameters)
    meeting_id = claims.get("meeting_id")
    record_id = claims.get("record_id")
    if not meeting_id or not record_id:
        raise JwtValidationError("missing meeting_id/record_id")
    return {"meeting_id": str(meeting_id), "record_id": str(record_id)}


def meeting_events_summary(*, secret: str, token: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate a meeting-events callback and reduce it to attendance figures.
    """

    decode_server_token(secret=secret, token=token)
    data = payload.get("data") or {}
    attributes = data.get("attributes") or {}
    meeting = attributes.get("meeting") or {}
    attendees = attributes.get("attendees") or []
    return {
        "internal_meeting_id": meeting.get("internal-meeting-id"),
        "external_meeting_id": meeting.get("external-meeting-id"),
        "attendees": [
            {
                "ext_user_id": a.get("ext-user-id"),
                "name": a.get("name"),
                "moderator": bool(a.get("moderator")),
                "duration": a.get("duration", 0),
            }
            for a in attendees
        ],
    }


# --- Module Notes -----------------------------------------------------------
# Callbacks are signed with the same shared secret the client uses for checksums.
