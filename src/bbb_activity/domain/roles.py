"""
bbb_activity.domain.roles

Participant rules of an instance.

Responsibilities:
- Provide the default participant list for instances that never set one.
- Decide whether a principal moderates the meeting.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from bbb_activity.auth.models import Principal

ROLE_MODERATOR = "moderator"
ROLE_VIEWER = "viewer"

# Course owners moderate, everyone else watches.
DEFAULT_PARTICIPANTS: tuple[dict[str, str], ...] = (
    {"selectiontype": "all", "selectionid": "all", "role": ROLE_VIEWER},
    {"selectiontype": "role", "selectionid": "editingteacher", "role": ROLE_MODERATOR},
    {"selectiontype": "role", "selectionid": "manager", "role": ROLE_MODERATOR},
)


def participant_list(raw: Iterable[Mapping[str, Any]] | None) -> list[dict[str, str]]:
    if not raw:
        return [dict(p) for p in DEFAULT_PARTICIPANTS]
    rules: list[dict[str, str]] = []
    for rule in raw:
        selectiontype = str(rule.get("selectiontype", ""))
        if selectiontype not in ("all", "role", "user"):
            continue
        rules.append(
            {
                "selectiontype": selectiontype,
                "selectionid": str(rule.get("selectionid", "")),
                "role": ROLE_MODERATOR if rule.get("role") == ROLE_MODERATOR else ROLE_VIEWER,
            }
        )
    return rules


def _matches(rule: Mapping[str, str], principal: Principal, course_id: int) -> bool:
    if rule["selectiontype"] == "all":
        return True
    if rule["selectiontype"] == "role":
        return rule["selectionid"] in principal.roles_in_course(course_id)
    return rule["selectionid"] == principal.subject


def is_moderator(
    principal: Principal, *, course_id: int, participants: Iterable[Mapping[str, str]]
) -> bool:
    return any(
        rule["role"] == ROLE_MODERATOR and _matches(rule, principal, course_id)
        for rule in participants
    )
