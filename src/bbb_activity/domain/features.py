"""
bbb_activity.domain.features

Instance-type profiles.

Responsibilities:
- List the features each instance type enables.
- Combine them with site settings into the `enabled_features` flags.
"""

from __future__ import annotations

from bbb_activity.db.models import InstanceType
from bbb_activity.settings import Settings

PROFILE_FEATURES: dict[InstanceType, tuple[str, ...]] = {
    InstanceType.all: ("all",),
    InstanceType.room_only: (
        "showroom",
        "welcomemessage",
        "voicebridge",
        "waitformoderator",
        "userlimit",
        "recording",
        "preuploadpresentation",
        "permissions",
        "schedule",
        "groups",
    ),
    InstanceType.recordings_only: ("showrecordings", "importrecordings"),
}


def profile_features(instance_type: int) -> tuple[str, ...]:
    try:
        return PROFILE_FEATURES[InstanceType(instance_type)]
    except ValueError:
        return PROFILE_FEATURES[InstanceType.all]


def enabled_features(features: tuple[str, ...], settings: Settings) -> dict[str, bool]:
    everything = "all" in features
    return {
        "showroom": everything or "showroom" in features,
        "showrecordings": everything or "showrecordings" in features,
        "importrecordings": settings.importrecordings_enabled
        and (everything or "importrecordings" in features),
    }
