"""
bbb_activity.errors

Domain exceptions shared by the service, broker and API layers.

Responsibilities:
- Name each failure the API layer knows how to translate into a response.
"""

from __future__ import annotations


class CourseNotFound(LookupError):
    """No course matches the requested course id."""


class InstanceNotFound(LookupError):
    """No activity instance matches the requested instance id or cmid."""


class GroupNotFound(LookupError):
    def __init__(self, group_id: int) -> None:
        super().__init__(f"Group {group_id} does not exist in this course")
        self.group_id = group_id


class UnknownRecordingAction(ValueError):
    def __init__(self, action: str) -> None:
        super().__init__(f"Unknown action '{action}'")
        self.action = action


class RecordingNotFound(LookupError):
    def __init__(self, recording_id: str) -> None:
        super().__init__(f"Recording '{recording_id}' is not available in this activity")
        self.recording_id = recording_id


class RequiredCapabilityError(PermissionError):
    def __init__(self, capability: str) -> None:
        super().__init__(
            f"Sorry, but you do not currently have permissions to do that ({capability})"
        )
        self.capability = capability


class MeetingNotAvailable(Exception):
    """The meeting cannot be joined right now (schedule or wait-for-moderator)."""


class ConferenceServerError(Exception):
    """
    The conferencing server answered with `<returncode>FAILED</returncode>`.
    """

    def __init__(self, message_key: str, message: str) -> None:
        super().__init__(f"{message_key}: {message}")
        self.message_key = message_key
        self.message = message


# --- Module Notes -----------------------------------------------------------
# Transport failures (`httpx.HTTPError`) are not wrapped; they propagate
# unchanged and are rendered by the API layer.
