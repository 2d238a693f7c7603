"""
bbb_activity.auth.capabilities

Capability checks in a course context.

Responsibilities:
- Map role archetypes to the capabilities they are granted.
- Answer `has_capability` / `has_any_capability` for a principal in a course.
- Raise `RequiredCapabilityError` from `require_capability`.
"""

from __future__ import annotations

from collections.abc import Iterable

from bbb_activity.auth.models import Principal
from bbb_activity.errors import RequiredCapabilityError

CAP_ADDINSTANCE = "mod/bigbluebuttonbn:addinstance"
CAP_JOIN = "mod/bigbluebuttonbn:join"
CAP_MANAGERECORDINGS = "mod/bigbluebuttonbn:managerecordings"
CAP_VIEW = "mod/bigbluebuttonbn:view"
CAP_CATEGORY_MANAGE = "moodle/category:manage"

ARCHETYPES: dict[str, frozenset[str]] = {
    "manager": frozenset(
        {CAP_ADDINSTANCE, CAP_JOIN, CAP_MANAGERECORDINGS, CAP_VIEW, CAP_CATEGORY_MANAGE}
    ),
    "editingteacher": frozenset({CAP_ADDINSTANCE, CAP_JOIN, CAP_MANAGERECORDINGS, CAP_VIEW}),
    "teacher": frozenset({CAP_JOIN, CAP_MANAGERECORDINGS, CAP_VIEW}),
    "student": frozenset({CAP_JOIN, CAP_VIEW}),
    "guest": frozenset({CAP_VIEW}),
}


def capabilities_for(roles: Iterable[str]) -> frozenset[str]:
    caps: set[str] = set()
    for role in roles:
        caps |= ARCHETYPES.get(role, frozenset())
    return frozenset(caps)


def has_capability(principal: Principal, capability: str, *, course_id: int) -> bool:
    # Site administrators hold every capability, as in the host framework.
    if principal.is_admin:
        return True
    return capability in capabilities_for(principal.roles_in_course(course_id))


def has_any_capability(principal: Principal, capabilities: Iterable[str], *, course_id: int) -> bool:
    return any(has_capability(principal, c, course_id=course_id) for c in capabilities)


def require_capability(principal: Principal, capability: str, *, course_id: int) -> None:
    if not has_capability(principal, capability, course_id=course_id):
        raise RequiredCapabilityError(capability)
