"""
tests.test_roles

Participant rules and course capabilities.
"""

from __future__ import annotations

import pytest

from bbb_activity.auth.capabilities import (
    CAP_ADDINSTANCE,
    CAP_JOIN,
    CAP_MANAGERECORDINGS,
    CAP_VIEW,
    has_capability,
    require_capability,
)
from bbb_activity.auth.models import Principal
from bbb_activity.domain.roles import DEFAULT_PARTICIPANTS, is_moderator, participant_list
from bbb_activity.errors import RequiredCapabilityError


def test_default_participant_list() -> None:
    rules = participant_list(None)
    assert rules == [dict(r) for r in DEFAULT_PARTICIPANTS]
    assert {"selectiontype": "all", "selectionid": "all", "role": "viewer"} in rules


def test_participant_list_drops_unknown_selection_types() -> None:
    rules = participant_list(
        [
            {"selectiontype": "user", "selectionid": "u9", "role": "moderator"},
            {"selectiontype": "cohort", "selectionid": "c1", "role": "moderator"},
            {"selectiontype": "role", "selectionid": "student", "role": "owner"},
        ]
    )
    assert rules == [
        {"selectiontype": "user", "selectionid": "u9", "role": "moderator"},
        {"selectiontype": "role", "selectionid": "student", "role": "viewer"},
    ]


def test_moderator_by_course_role_only_in_that_course() -> None:
    teacher = Principal(subject="t1", course_roles={3: frozenset({"editingteacher"})})
    rules = participant_list(None)
    assert is_moderator(teacher, course_id=3, participants=rules) is True
    assert is_moderator(teacher, course_id=4, participants=rules) is False


def test_moderator_by_user_rule() -> None:
    rules = participant_list([{"selectiontype": "user", "selectionid": "s1", "role": "moderator"}])
    assert is_moderator(Principal(subject="s1"), course_id=3, participants=rules) is True
    assert is_moderator(Principal(subject="s2"), course_id=3, participants=rules) is False


def test_capabilities_by_archetype() -> None:
    student = Principal(subject="s1", course_roles={3: frozenset({"student"})})
    assert has_capability(student, CAP_JOIN, course_id=3)
    assert has_capability(student, CAP_VIEW, course_id=3)
    assert not has_capability(student, CAP_MANAGERECORDINGS, course_id=3)
    assert not has_capability(student, CAP_JOIN, course_id=4)

    teacher = Principal(subject="t1", course_roles={3: frozenset({"teacher"})})
    assert has_capability(teacher, CAP_MANAGERECORDINGS, course_id=3)
    assert not has_capability(teacher, CAP_ADDINSTANCE, course_id=3)

    admin = Principal(subject="root", roles=frozenset({"admin"}))
    assert has_capability(admin, CAP_ADDINSTANCE, course_id=99)


def test_require_capability_names_the_capability() -> None:
    with pytest.raises(RequiredCapabilityError) as exc:
        require_capability(Principal(subject="nobody"), CAP_MANAGERECORDINGS, course_id=3)
    assert exc.value.capability == CAP_MANAGERECORDINGS
