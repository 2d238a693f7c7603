"""
bbb_activity.db.models

Persistence schema for the activity module.

Responsibilities:
- Define ORM models for the host records the module reads:
  - Course, CourseGroup, CourseModule
- Define the module's own tables:
  - ActivityInstance: conferencing configuration of one course module
  - LogEvent: append-only activity log (joins, recording actions, imports)
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bbb_activity.db.base import Base

MODULE_NAME = "bigbluebuttonbn"


def _utcnow() -> datetime:
    return datetime.utcnow()


class InstanceType(enum.IntEnum):
    # Stored as an int column; values match the module-management form choices.
    all = 0
    room_only = 1
    recordings_only = 2


class LogType(enum.StrEnum):
    create = "Create"
    join = "Join"
    logout = "Logout"
    import_ = "Import"
    delete = "Delete"
    edit = "Edit"
    protect = "Protect"
    unprotect = "Unprotect"
    publish = "Publish"
    unpublish = "Unpublish"
    recording_ready = "RecordingReady"
    meeting_events = "MeetingEvents"


class Course(Base):
    __tablename__ = "course"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fullname: Mapped[str] = mapped_column(String(254), nullable=False)
    shortname: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    groups: Mapped[list[CourseGroup]] = relationship(
        back_populates="course", cascade="all, delete-orphan"
    )


class CourseGroup(Base):
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("course.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(254), nullable=False)

    course: Mapped[Course] = relationship(back_populates="groups")


class CourseModule(Base):
    __tablename__ = "course_modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("course.id"), nullable=False, index=True)
    module: Mapped[str] = mapped_column(String(20), nullable=False, default=MODULE_NAME)
    instance_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("module", "instance_id", name="uq_cm_module_instance"),)


class ActivityInstance(Base):
    __tablename__ = "bigbluebuttonbn"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("course.id"), nullable=False, index=True)
    type: Mapped[int] = mapped_column(Integer, nullable=False, default=InstanceType.all)

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    intro: Mapped[str | None] = mapped_column(Text, nullable=True)

    meetingid: Mapped[str] = mapped_column(String(256), nullable=False)
    moderatorpass: Mapped[str] = mapped_column(String(255), nullable=False)
    viewerpass: Mapped[str] = mapped_column(String(255), nullable=False)

    wait: Mapped[bool] = mapped_column(nullable=False, default=False)
    record: Mapped[bool] = mapped_column(nullable=False, default=False)
    recordallfromstart: Mapped[bool] = mapped_column(nullable=False, default=False)
    recordhidebutton: Mapped[bool] = mapped_column(nullable=False, default=False)
    welcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    voicebridge: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Unix timestamps; 0 means "not scheduled".
    openingtime: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    closingtime: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    userlimit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    presentation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    participants: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    muteonstart: Mapped[bool] = mapped_column(nullable=False, default=False)
    disablecam: Mapped[bool] = mapped_column(nullable=False, default=False)
    disablemic: Mapped[bool] = mapped_column(nullable=False, default=False)
    disableprivatechat: Mapped[bool] = mapped_column(nullable=False, default=False)
    disablepublicchat: Mapped[bool] = mapped_column(nullable=False, default=False)
    disablenote: Mapped[bool] = mapped_column(nullable=False, default=False)
    hideuserlist: Mapped[bool] = mapped_column(nullable=False, default=False)
    lockedlayout: Mapped[bool] = mapped_column(nullable=False, default=False)
    lockonjoin: Mapped[bool] = mapped_column(nullable=False, default=False)
    lockonjoinconfigurable: Mapped[bool] = mapped_column(nullable=False, default=False)

    timecreated: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    timemodified: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    def as_dict(self) -> dict[str, Any]:
        return {c.key: getattr(self, c.key) for c in self.__table__.columns}


class LogEvent(Base):
    __tablename__ = "bigbluebuttonbn_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(Integer, nullable=False)
    instance_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(256), nullable=False)
    meeting_id: Mapped[str] = mapped_column(String(256), nullable=False)
    log: Mapped[LogType] = mapped_column(Enum(LogType), nullable=False, index=True)
    meta: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)

    __table_args__ = (Index("ix_logs_instance_log", "instance_id", "log"),)


# --- Module Notes -----------------------------------------------------------
# Column names of `bigbluebuttonbn` are part of the session descriptor contract
# (they are copied verbatim into it), so keep them stable.
