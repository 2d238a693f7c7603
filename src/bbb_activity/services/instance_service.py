"""
bbb_activity.services.instance_service

Instance lookup for a principal.

Responsibilities:
- Load the joined instance rows and course groups into an `Instance`.
- Produce the session bundle (descriptor, context, enabled features) used by
  recordings, meetings and views.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bbb_activity.auth.models import Principal
from bbb_activity.conference.client import ConferenceClient
from bbb_activity.db.repositories.courses import CourseRepo
from bbb_activity.db.repositories.instances import InstanceRepo, InstanceRow
from bbb_activity.domain.features import enabled_features, profile_features
from bbb_activity.domain.instance import Instance
from bbb_activity.errors import GroupNotFound, InstanceNotFound
from bbb_activity.settings import Settings


@dataclass(slots=True)
class SessionBundle:
    instance: Instance
    bbbsession: dict[str, Any]
    context: int
    profile_features: tuple[str, ...]
    enabled_features: dict[str, bool]


class InstanceService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        client: ConferenceClient,
        principal: Principal,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session = session
        self._settings = settings
        self._client = client
        self._principal = principal
        self._clock = clock

        self._instances = InstanceRepo(session)
        self._courses = CourseRepo(session)

    async def _wrap(self, row: InstanceRow | None, group_id: int | None) -> Instance:
        if row is None:
            raise InstanceNotFound()
        group_names = await self._courses.group_names(row.course.id)
        # Group 0 is the whole-course session.
        if group_id and group_id not in group_names:
            raise GroupNotFound(group_id)
        instance = Instance.from_row(
            row,
            principal=self._principal,
            settings=self._settings,
            group_names=group_names,
            clock=self._clock,
        )
        if group_id is not None:
            instance.set_group_id(group_id)
        return instance

    async def get_from_instanceid(self, instance_id: int, *, group_id: int | None = None) -> Instance:
        return await self._wrap(await self._instances.get_by_instance_id(instance_id), group_id)

    async def get_from_cmid(self, cmid: int, *, group_id: int | None = None) -> Instance:
        return await self._wrap(await self._instances.get_by_cmid(cmid), group_id)

    async def bundle(self, instance: Instance) -> SessionBundle:
        features = profile_features(instance.get_instance_var("type") or 0)
        bbbsession = instance.get_legacy_session_object(
            server_version=await self._client.server_version()
        )
        return SessionBundle(
            instance=instance,
            bbbsession=bbbsession,
            context=instance.get_context(),
            profile_features=features,
            enabled_features=enabled_features(features, self._settings),
        )

    async def get_session_from_id(self, instance_id: int, *, group_id: int | None = None) -> SessionBundle:
        return await self.bundle(await self.get_from_instanceid(instance_id, group_id=group_id))

    async def get_session_from_cmid(self, cmid: int, *, group_id: int | None = None) -> SessionBundle:
        return await self.bundle(await self.get_from_cmid(cmid, group_id=group_id))


def view_state(bundle: SessionBundle) -> dict[str, Any]:
    """
    What the activity page shows for the caller; no meeting credentials.
    """

    instance = bundle.instance
    s = bundle.bbbsession
    return {
        "cmid": s["cm"]["id"],
        "instance_id": instance.get_instance_id(),
        "course": s["course"],
        "meetingid": s["meetingid"],
        "meetingname": s["meetingname"],
        "meetingdescription": s["meetingdescription"] or "",
        "group": instance.get_group_id(),
        "group_name": instance.get_group_name(),
        "openingtime": s["openingtime"],
        "closingtime": s["closingtime"],
        "before_start": instance.before_start_time(),
        "has_ended": instance.has_ended(),
        "is_open": instance.is_currently_open(),
        "can_join": instance.can_join(),
        "administrator": s["administrator"],
        "moderator": s["moderator"],
        "managerecordings": s["managerecordings"],
        "recording": instance.is_recorded(),
        "welcome": instance.get_welcome_message(),
        "serverversion": s["serverversion"],
        "profile_features": list(bundle.profile_features),
        "enabled_features": bundle.enabled_features,
        "join_url": s["joinURL"],
        "recordings_url": instance.get_recordings_url(),
        "import_url": instance.get_import_url()
        if bundle.enabled_features["importrecordings"] and s["importrecordings"]
        else None,
    }


# --- Module Notes -----------------------------------------------------------
# Building a bundle costs one request to the server API root (version lookup).
