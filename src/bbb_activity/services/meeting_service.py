"""
bbb_activity.services.meeting_service

Join and logout flows.

Responsibilities:
- Check the join capability and the instance's time window.
- Create the meeting on the conferencing server from the session descriptor when
  it is not running yet.
- Build the signed join URL and log joins/logouts.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.auth.capabilities import CAP_JOIN
from bbb_activity.auth.models import Principal
from bbb_activity.conference.client import ConferenceClient
from bbb_activity.db.models import LogType
from bbb_activity.db.repositories.logs import LogRepo
from bbb_activity.errors import MeetingNotAvailable, RequiredCapabilityError
from bbb_activity.lang import get_string
from bbb_activity.observability.logging import get_logger
from bbb_activity.services.instance_service import InstanceService, SessionBundle
from bbb_activity.settings import Settings

log = get_logger(__name__)


def create_parameters(bundle: SessionBundle) -> dict[str, Any]:
    """
    Map the session descriptor onto the server's `create` call.
    """

    s = bundle.bbbsession
    instance = bundle.instance
    params: dict[str, Any] = {
        "meetingID": s["meetingid"],
        "name": s["meetingname"],
        "attendeePW": s["viewerPW"],
        "moderatorPW": s["modPW"],
        "logoutURL": s["logoutURL"],
        # The descriptor's `welcome` holds the raw column; send the composed message.
        "welcome": instance.get_welcome_message(),
        "record": "true" if instance.is_recorded() else "false",
        "autoStartRecording": "true" if s["recordallfromstart"] else "false",
        "allowStartStopRecording": "false" if s["recordhidebutton"] else "true",
        "muteOnStart": "true" if s["muteonstart"] else "false",
        "lockSettingsDisableCam": "true" if s["disablecam"] else "false",
        "lockSettingsDisableMic": "true" if s["disablemic"] else "false",
        "lockSettingsDisablePrivateChat": "true" if s["disableprivatechat"] else "false",
        "lockSettingsDisablePublicChat": "true" if s["disablepublicchat"] else "false",
        "lockSettingsDisableNote": "true" if s["disablenote"] else "false",
        "lockSettingsHideUserList": "true" if s["hideuserlist"] else "false",
        "lockSettingsLockedLayout": "true" if s["lockedlayout"] else "false",
        "lockSettingsLockOnJoin": "true" if s["lockonjoin"] else "false",
        "lockSettingsLockOnJoinConfigurable": "true" if s["lockonjoinconfigurable"] else "false",
        "meta_bbb-origin": s["origin"],
        "meta_bbb-origin-version": s["originVersion"],
        "meta_bbb-origin-server-name": s["originServerName"],
        "meta_bbb-origin-server-common-name": s["originServerCommonName"],
        "meta_bbb-origin-tag": s["originTag"],
        "meta_bbb-context": s["coursename"],
        "meta_bbb-recording-name": s["meetingname"],
        "meta_bbb-recording-description": s["meetingdescription"] or "",
        "meta_bbb-recording-ready-url": s["recordingReadyURL"],
        "meta_analytics-callback-url": s["meetingEventsURL"],
    }
    if s["voicebridge"]:
        params["voiceBridge"] = s["voicebridge"]
    if s["userlimit"]:
        params["maxParticipants"] = s["userlimit"]
    if s["presentation"]:
        params["preUploadedPresentation"] = s["presentation"]["url"]
    return params


class MeetingService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        client: ConferenceClient,
        principal: Principal,
    ) -> None:
        self._session = session
        self._client = client
        self._principal = principal

        self._instances = InstanceService(
            session=session, settings=settings, client=client, principal=principal
        )
        self._logs = LogRepo(session)

    async def join(self, *, cmid: int, group_id: int | None = None) -> str:
        """
        Return the server join URL for the principal, creating the meeting if needed.
        """

        bundle = await self._instances.get_session_from_cmid(cmid, group_id=group_id)
        instance = bundle.instance
        s = bundle.bbbsession

        if not instance.can_join():
            raise RequiredCapabilityError(CAP_JOIN)
        if not bundle.enabled_features["showroom"]:
            raise MeetingNotAvailable("This activity only lists recordings.")
        if instance.before_start_time():
            raise MeetingNotAvailable(get_string("view_message_conference_not_started"))
        if instance.has_ended():
            raise MeetingNotAvailable(get_string("view_message_conference_has_ended"))

        moderator = s["moderator"] or s["administrator"]
        if not await self._client.is_meeting_running(s["meetingid"]):
            if s["wait"] and not moderator:
                raise MeetingNotAvailable("Waiting for a moderator to join.")
            await self._client.create_meeting(create_parameters(bundle))
            await self._log(bundle, LogType.create, {"record": instance.is_recorded()})
            log.info("meeting_created", meeting_id=s["meetingid"])

        url = self._client.join_url(
            meeting_id=s["meetingid"],
            fullname=s["username"],
            password=s["modPW"] if moderator else s["viewerPW"],
            logout_url=s["logoutURL"],
            user_id=s["userID"],
        )
        await self._log(bundle, LogType.join, {"moderator": moderator})
        await self._session.commit()
        log.info("meeting_joined", meeting_id=s["meetingid"], moderator=moderator)
        return url

    async def logout(self, *, cmid: int) -> str:
        instance = await self._instances.get_from_cmid(cmid)
        await self._logs.add(
            course_id=instance.get_course_id(),
            instance_id=instance.get_instance_id(),
            user_id=self._principal.subject,
            meeting_id=instance.get_meeting_id(),
            log=LogType.logout,
        )
        await self._session.commit()
        return instance.get_view_url()

    async def _log(self, bundle: SessionBundle, kind: LogType, meta: dict[str, Any]) -> None:
        instance = bundle.instance
        await self._logs.add(
            course_id=instance.get_course_id(),
            instance_id=instance.get_instance_id(),
            user_id=self._principal.subject,
            meeting_id=bundle.bbbsession["meetingid"],
            log=kind,
            meta=meta,
        )
