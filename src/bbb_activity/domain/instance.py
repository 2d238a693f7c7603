"""
bbb_activity.domain.instance

Instance wrapper for one activity and the user looking at it.

Responsibilities:
- Expose derived accessors over the joined course / course-module / instance rows
  (meeting id and name, passwords, time window, recording flags, URLs).
- Resolve the caller's role in the meeting (administrator, moderator, managers).
- Build and cache the legacy session descriptor sent towards the conferencing server.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import quote, urlencode, urlparse

from bbb_activity import __version__
from bbb_activity.auth.capabilities import (
    CAP_CATEGORY_MANAGE,
    CAP_JOIN,
    CAP_MANAGERECORDINGS,
    has_any_capability,
    has_capability,
)
from bbb_activity.auth.models import Principal
from bbb_activity.db.models import ActivityInstance, Course, CourseModule
from bbb_activity.db.repositories.instances import InstanceRow
from bbb_activity.domain import roles
from bbb_activity.lang import get_string
from bbb_activity.settings import Settings

MODULE_PATH = "/mod/bigbluebuttonbn"

# Instance columns copied verbatim into the session descriptor.
INSTANCE_SETTINGS = (
    "openingtime",
    "closingtime",
    "muteonstart",
    "disablecam",
    "disablemic",
    "disableprivatechat",
    "disablepublicchat",
    "disablenote",
    "hideuserlist",
    "lockedlayout",
    "lockonjoin",
    "lockonjoinconfigurable",
    "wait",
    "record",
    "welcome",
)


class Instance:
    """
    One activity as seen by one principal.

    Everything here is read-only apart from the display group, which callers set
    from the group selector before reading meeting ids or names.
    """

    def __init__(
        self,
        cm: CourseModule,
        course: Course,
        instancedata: ActivityInstance,
        *,
        principal: Principal,
        settings: Settings,
        group_names: Mapping[int, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cm = cm
        self._course = course
        self._instancedata = instancedata
        self._principal = principal
        self._settings = settings
        self._group_names = dict(group_names or {})
        self._clock = clock

        self._groupid: int | None = None
        self._participantlist: list[dict[str, str]] | None = None
        self._legacydata: dict[str, Any] | None = None

    @classmethod
    def from_row(cls, row: InstanceRow, **kwargs: Any) -> Instance:
        return cls(row.cm, row.course, row.instance, **kwargs)

    # -- groups -------------------------------------------------------------

    def set_group_id(self, groupid: int) -> None:
        self._groupid = groupid
        # Meeting id and name depend on the group.
        self._legacydata = None

    def get_group_id(self) -> int | None:
        return self._groupid

    def get_group_name(self) -> str | None:
        groupid = self.get_group_id()
        if groupid is None:
            return None
        if groupid == 0:
            return get_string("allparticipants")
        return self._group_names.get(groupid)

    # -- records ------------------------------------------------------------

    def get_course(self) -> Course:
        return self._course

    def get_course_id(self) -> int:
        return self._course.id

    def get_cm(self) -> CourseModule:
        return self._cm

    def get_context(self) -> int:
        # Module context; one per course module.
        return self._cm.id

    def get_instance_data(self) -> ActivityInstance:
        return self._instancedata

    def get_instance_id(self) -> int:
        return self._instancedata.id

    def get_instance_var(self, name: str) -> Any:
        return getattr(self._instancedata, name, None)

    def get_principal(self) -> Principal:
        return self._principal

    # -- meeting ------------------------------------------------------------

    def get_meeting_id(self, groupid: int | None = None) -> str:
        baseid = f"{self.get_instance_var('meetingid')}-{self.get_course_id()}-{self.get_instance_id()}"
        if groupid is None:
            groupid = self.get_group_id()
        if groupid is None:
            return baseid
        return f"{baseid}[{groupid}]"

    def get_meeting_name(self) -> str:
        meetingname = self.get_instance_var("name") or ""
        groupname = self.get_group_name()
        if groupname is not None:
            meetingname += f" ({groupname})"
        return meetingname

    def get_legacy_session_object(self, *, server_version: str | None = None) -> dict[str, Any]:
        """
        The session descriptor consumed by the join flow and the recordings view.

        Built once per display group; later calls return the cached dict.
        """

        if self._legacydata is None:
            self._legacydata = self._generate_legacy_session_object(server_version)
        return self._legacydata

    def _generate_legacy_session_object(self, server_version: str | None) -> dict[str, Any]:
        course = self.get_course()
        cm = self.get_cm()
        bbbsession: dict[str, Any] = {
            "username": self._principal.fullname,
            "userID": self._principal.subject,
            "context": self.get_context(),
            "course": {"id": course.id, "fullname": course.fullname, "shortname": course.shortname},
            "coursename": course.fullname,
            "cm": {"id": cm.id, "course": cm.course_id, "instance": cm.instance_id, "modname": cm.module},
            "bigbluebuttonbn": self._instancedata.as_dict(),
            "administrator": self.is_admin(),
            "moderator": self.is_moderator(),
            "managerecordings": self.can_manage_recordings(),
            "importrecordings": self.can_manage_recordings(),
            "modPW": self.get_moderator_password(),
            "viewerPW": self.get_viewer_password(),
            "meetingid": self.get_meeting_id(),
            "meetingname": self.get_meeting_name(),
            "meetingdescription": self.get_instance_var("intro"),
            "userlimit": self.get_user_limit(),
            "voicebridge": self.get_voice_bridge() or 0,
            "recordallfromstart": self.should_record_from_start(),
            "recordhidebutton": self.should_show_recording_button(),
            "welcome": self.get_welcome_message(),
            "presentation": self.get_presentation(),
            "bnserver": self.is_blindside_network_server(),
            "serverversion": server_version or "",
            "bigbluebuttonbnURL": self.get_view_url(),
            "logoutURL": self.get_logout_url(),
            "recordingReadyURL": self.get_record_ready_url(),
            "meetingEventsURL": self.get_meeting_event_notification_url(),
            "joinURL": self.get_join_url(),
        }
        # Raw instance settings overwrite derived values of the same name (e.g. `welcome`).
        for settingname in INSTANCE_SETTINGS:
            bbbsession[settingname] = self.get_instance_var(settingname)

        bbbsession.update(self.get_origin_data())
        return bbbsession

    # -- permissions --------------------------------------------------------

    def get_participant_list(self) -> list[dict[str, str]]:
        if self._participantlist is None:
            self._participantlist = roles.participant_list(self.get_instance_var("participants"))
        return self._participantlist

    def is_admin(self) -> bool:
        return self._principal.is_admin

    def is_moderator(self) -> bool:
        return roles.is_moderator(
            self._principal,
            course_id=self.get_course_id(),
            participants=self.get_participant_list(),
        )

    def can_join(self) -> bool:
        return has_any_capability(
            self._principal, [CAP_CATEGORY_MANAGE, CAP_JOIN], course_id=self.get_course_id()
        )

    def can_manage_recordings(self) -> bool:
        # Includes site administrators.
        return has_capability(self._principal, CAP_MANAGERECORDINGS, course_id=self.get_course_id())

    # -- settings -----------------------------------------------------------

    def get_user_limit(self) -> int:
        if self._settings.userlimit_editable:
            return int(self.get_instance_var("userlimit") or 0)
        return int(self._settings.userlimit_default)

    def get_voice_bridge(self) -> int | None:
        voicebridge = int(self.get_instance_var("voicebridge") or 0)
        if voicebridge > 0:
            return 70000 + voicebridge
        return None

    def get_moderator_password(self) -> str:
        return self.get_instance_var("moderatorpass")

    def get_viewer_password(self) -> str:
        return self.get_instance_var("viewerpass")

    def should_show_recording_button(self) -> bool:
        if self._settings.recording_hide_button_editable:
            return bool(self.get_instance_var("recordhidebutton"))
        return self._settings.recording_hide_button_default

    def is_recorded(self) -> bool:
        return bool(self.get_instance_var("record"))

    def should_record_from_start(self) -> bool:
        if not self.is_recorded():
            return False
        return bool(self.get_instance_var("recordallfromstart"))

    def get_welcome_message(self) -> str:
        welcomestring = self.get_instance_var("welcome")
        if not welcomestring:
            welcomestring = get_string("mod_form_field_welcome_default")

        welcome = [welcomestring]
        if self.is_recorded():
            if self.should_record_from_start():
                welcome.append(get_string("bbbrecordallfromstartwarning"))
            else:
                welcome.append(get_string("bbbrecordwarning"))

        return "<br><br>".join(welcome)

    def get_presentation(self) -> dict[str, str]:
        filename = self.get_instance_var("presentation")
        if not filename:
            return {}
        if self.has_ended():
            return self._presentation(filename, nonce=None)
        if self.is_currently_open():
            return self._presentation(filename, nonce=self._presentation_nonce())
        return {}

    def _presentation_nonce(self) -> str:
        # Lets the conferencing server fetch the file while the meeting is open.
        message = f"{self.get_instance_id()}:{self.get_meeting_id()}".encode()
        return hmac.new(self._settings.shared_secret.encode(), message, hashlib.sha256).hexdigest()[:20]

    def _presentation(self, filename: str, *, nonce: str | None) -> dict[str, str]:
        url = (
            f"{self._settings.wwwroot}/pluginfile.php/{self.get_context()}"
            f"/mod_bigbluebuttonbn/presentation/{nonce or 0}/{quote(filename)}"
        )
        return {"url": url, "name": filename}

    # -- schedule -----------------------------------------------------------

    def before_start_time(self) -> bool:
        openingtime = self.get_instance_var("openingtime")
        if not openingtime:
            return False
        return openingtime >= self._clock()

    def has_ended(self) -> bool:
        closingtime = self.get_instance_var("closingtime")
        if not closingtime:
            return False
        return closingtime <= self._clock()

    def is_currently_open(self) -> bool:
        if self.before_start_time():
            return False
        if self.has_ended():
            return False
        return True

    # -- origin -------------------------------------------------------------

    def get_origin_data(self) -> dict[str, str]:
        wwwroot = self._settings.wwwroot
        return {
            "origin": "LMS",
            "originVersion": self._settings.release,
            "originServerName": urlparse(wwwroot).hostname or "",
            "originServerUrl": wwwroot,
            "originServerCommonName": "",
            "originTag": f"{self._settings.service_name} ({__version__})",
        }

    def is_blindside_network_server(self) -> bool:
        if self._settings.bn_server:
            return True
        host = urlparse(self._settings.server_url).hostname or ""
        return host.split(".")[-2:] == ["blindsidenetworks", "com"]

    # -- urls ---------------------------------------------------------------

    def _url(self, page: str, params: Mapping[str, Any]) -> str:
        return f"{self._settings.wwwroot}{MODULE_PATH}/{page}?{urlencode(params)}"

    def get_view_url(self) -> str:
        return self._url("view", {"id": self._cm.id})

    def get_logout_url(self) -> str:
        return self._url("bbb_view", {"action": "logout", "id": self._cm.id})

    def get_record_ready_url(self) -> str:
        return self._url(
            "bbb_broker", {"action": "recording_ready", "bigbluebuttonbn": self.get_instance_id()}
        )

    def get_meeting_event_notification_url(self) -> str:
        return self._url(
            "bbb_broker", {"action": "meeting_events", "bigbluebuttonbn": self.get_instance_id()}
        )

    def get_join_url(self) -> str:
        return self._url(
            "bbb_view", {"action": "join", "id": self._cm.id, "bn": self.get_instance_id()}
        )

    def get_recordings_url(self) -> str:
        return self._url("recordings", {"bn": self.get_instance_id()})

    def get_import_url(self, source_course_id: int | None = None) -> str:
        params: dict[str, Any] = {"bn": self.get_instance_id()}
        if source_course_id is not None:
            params["tc"] = source_course_id
        return self._url("import_view", params)


# --- Module Notes -----------------------------------------------------------
# Descriptor keys keep their historical camelCase names (`modPW`, `joinURL`, ...);
# `services.meeting_service` reads them by name when creating and joining meetings.
