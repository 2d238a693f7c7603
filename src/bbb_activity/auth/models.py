"""
bbb_activity.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.

    `roles` are held site-wide; `course_roles` only apply inside one course.
    """

    subject: str
    fullname: str = ""
    roles: frozenset[str] = frozenset()
    course_roles: dict[int, frozenset[str]] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def roles_in_course(self, course_id: int) -> frozenset[str]:
        return self.roles | self.course_roles.get(course_id, frozenset())
