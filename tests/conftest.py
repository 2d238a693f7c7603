"""
tests.conftest

Shared fixtures: settings on a temporary SQLite database, an in-process fake
conferencing server (httpx.MockTransport), the app with its lifespan running,
and a seeded course with one activity.
"""

from __future__ import annotations

import hashlib
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs
from xml.sax.saxutils import escape

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from bbb_activity.api.app import create_app
from bbb_activity.auth.deps import jwt_cfg
from bbb_activity.auth.jwt import issue_token
from bbb_activity.db.models import LogEvent
from bbb_activity.db.repositories.courses import CourseRepo
from bbb_activity.db.repositories.instances import InstanceRepo
from bbb_activity.db.repositories.logs import LogRepo
from bbb_activity.settings import Settings

SHARED_SECRET = "bbb-shared-secret-0123456789abcdef-0123456789abcdef-0123456789ab"
SERVER_URL = "https://bbb.example.test/bigbluebutton/"


@dataclass
class FakeServer:
    """
    Enough of the conferencing server API for the service: recordings,
    meetings and the version root. Verifies every checksum.
    """

    recordings: dict[str, dict[str, Any]] = field(default_factory=dict)
    running: set[str] = field(default_factory=set)
    created: list[dict[str, str]] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    fail: dict[str, str] = field(default_factory=dict)
    version: str = "2.7"
    down: bool = False

    def add_recording(
        self,
        record_id: str,
        meeting_id: str,
        *,
        name: str,
        description: str = "",
        published: bool = True,
        protected: bool | None = False,
        start_time: int = 1_700_000_000_000,
        minutes: int = 30,
    ) -> None:
        self.recordings[record_id] = {
            "recordID": record_id,
            "meetingID": meeting_id,
            "name": name,
            "published": published,
            "protected": protected,
            "startTime": start_time,
            "endTime": start_time + minutes * 60_000,
            "metadata": {"bbb-recording-name": name, "bbb-recording-description": description},
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        path = request.url.path
        if path.rstrip("/") == "/bigbluebutton/api":
            self.calls.append("version")
            return self._xml(f"<version>{self.version}</version>")

        call = path.rsplit("/", 1)[-1]
        self.calls.append(call)
        raw = request.url.query.decode()
        query, _, digest = raw.rpartition("&checksum=")
        if not query and raw.startswith("checksum="):
            digest = raw.removeprefix("checksum=")
        if hashlib.sha1(f"{call}{query}{SHARED_SECRET}".encode()).hexdigest() != digest:
            return self._failed("checksumError", "You did not pass the checksum security check")
        if call in self.fail:
            return self._failed(self.fail[call], f"{call} failed")

        params = {k: v[0] for k, v in parse_qs(query).items()}
        return getattr(self, f"_{call}")(params)

    def _getRecordings(self, params: dict[str, str]) -> httpx.Response:
        wanted = set(params.get("meetingID", "").split(","))
        nodes = "".join(
            self._recording_xml(r) for r in self.recordings.values() if r["meetingID"] in wanted
        )
        return self._xml(f"<recordings>{nodes}</recordings>")

    def _publishRecordings(self, params: dict[str, str]) -> httpx.Response:
        rec = self._get(params["recordID"])
        if rec is None:
            return self._failed("notFound", "Recording not found")
        rec["published"] = params["publish"] == "true"
        return self._xml(f"<published>{params['publish']}</published>")

    def _deleteRecordings(self, params: dict[str, str]) -> httpx.Response:
        if self.recordings.pop(params["recordID"], None) is None:
            return self._failed("notFound", "Recording not found")
        return self._xml("<deleted>true</deleted>")

    def _updateRecordings(self, params: dict[str, str]) -> httpx.Response:
        rec = self._get(params["recordID"])
        if rec is None:
            return self._failed("notFound", "Recording not found")
        if "protect" in params:
            rec["protected"] = params["protect"] == "true"
        for key, value in params.items():
            if key.startswith("meta_"):
                rec["metadata"][key.removeprefix("meta_")] = value
        return self._xml("<updated>true</updated>")

    def _isMeetingRunning(self, params: dict[str, str]) -> httpx.Response:
        running = "true" if params["meetingID"] in self.running else "false"
        return self._xml(f"<running>{running}</running>")

    def _create(self, params: dict[str, str]) -> httpx.Response:
        self.created.append(params)
        self.running.add(params["meetingID"])
        return self._xml(f"<meetingID>{escape(params['meetingID'])}</meetingID>")

    def _get(self, record_id: str) -> dict[str, Any] | None:
        return self.recordings.get(record_id)

    @staticmethod
    def _recording_xml(r: dict[str, Any]) -> str:
        metadata = "".join(f"<{k}>{escape(v)}</{k}>" for k, v in r["metadata"].items())
        protected = (
            "" if r["protected"] is None else f"<protected>{str(r['protected']).lower()}</protected>"
        )
        minutes = (r["endTime"] - r["startTime"]) // 60_000
        return (
            "<recording>"
            f"<recordID>{escape(r['recordID'])}</recordID>"
            f"<meetingID>{escape(r['meetingID'])}</meetingID>"
            f"<name>{escape(r['name'])}</name>"
            f"<published>{str(r['published']).lower()}</published>"
            f"{protected}"
            f"<startTime>{r['startTime']}</startTime>"
            f"<endTime>{r['endTime']}</endTime>"
            f"<metadata>{metadata}</metadata>"
            "<playback><format><type>presentation</type>"
            f"<url>https://bbb.example.test/playback/{escape(r['recordID'])}</url>"
            f"<length>{minutes}</length></format></playback>"
            "</recording>"
        )

    @staticmethod
    def _xml(body: str) -> httpx.Response:
        return httpx.Response(
            200,
            text=f"<response><returncode>SUCCESS</returncode>{body}</response>",
            headers={"content-type": "text/xml"},
        )

    @staticmethod
    def _failed(key: str, message: str) -> httpx.Response:
        return httpx.Response(
            200,
            text=(
                "<response><returncode>FAILED</returncode>"
                f"<messageKey>{key}</messageKey><message>{escape(message)}</message></response>"
            ),
        )


@dataclass(frozen=True)
class Seed:
    course_id: int
    other_course_id: int
    group_id: int
    instance_id: int
    cmid: int
    other_instance_id: int

    @property
    def meeting_id(self) -> str:
        return f"abc-{self.course_id}-{self.instance_id}"

    @property
    def other_meeting_id(self) -> str:
        return f"xyz-{self.other_course_id}-{self.other_instance_id}"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-jwt-secret-0123456789abcdef",
        server_url=SERVER_URL,
        shared_secret=SHARED_SECRET,
        wwwroot="https://lms.example.test",
        log_level="WARNING",
    )


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def app(settings: Settings, fake_server: FakeServer) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings, conference_transport=httpx.MockTransport(fake_server.handler))
    # httpx ASGITransport does not run the lifespan; do it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def seed(app: FastAPI, fake_server: FakeServer) -> Seed:
    async with app.state.sessionmaker() as session:
        courses = CourseRepo(session)
        course = await courses.create(fullname="Physics 101", shortname="PHY101")
        other = await courses.create(fullname="Chemistry 201", shortname="CHE201")
        group = await courses.add_group(course_id=course.id, name="Group A")

        instances = InstanceRepo(session)
        row = await instances.create(
            course_id=course.id,
            fields={
                "name": "Weekly lecture",
                "intro": "Lectures of the week",
                "meetingid": "abc",
                "moderatorpass": "mod-secret",
                "viewerpass": "viewer-secret",
                "record": True,
            },
        )
        other_row = await instances.create(
            course_id=other.id,
            fields={
                "name": "Lab session",
                "meetingid": "xyz",
                "moderatorpass": "mp2",
                "viewerpass": "vp2",
            },
        )
        await session.commit()
        s = Seed(
            course_id=course.id,
            other_course_id=other.id,
            group_id=group.id,
            instance_id=row.instance.id,
            cmid=row.cm.id,
            other_instance_id=other_row.instance.id,
        )

    fake_server.add_recording(
        "rec-1",
        s.meeting_id,
        name="Lecture one",
        description="Intro to Algebra",
        start_time=1_700_000_000_000,
    )
    fake_server.add_recording(
        "rec-2",
        f"{s.meeting_id}[{s.group_id}]",
        name="Group session",
        description="Working on <b>Geometry</b>",
        published=False,
        start_time=1_700_100_000_000,
    )
    fake_server.add_recording("rec-lab", s.other_meeting_id, name="Titration lab")
    return s


def make_token(
    settings: Settings,
    subject: str,
    *,
    roles: Sequence[str] = (),
    course_roles: dict[int, list[str]] | None = None,
    fullname: str = "",
) -> str:
    return issue_token(
        cfg=jwt_cfg(settings),
        subject=subject,
        roles=list(roles),
        fullname=fullname or subject.title(),
        course_roles=course_roles or {},
    )


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def teacher(settings: Settings, seed: Seed) -> dict[str, str]:
    return auth(make_token(settings, "teacher", course_roles={seed.course_id: ["editingteacher"]}))


@pytest.fixture
def importer(settings: Settings, seed: Seed) -> dict[str, str]:
    # Manages recordings in both courses, as importing requires.
    roles = {seed.course_id: ["editingteacher"], seed.other_course_id: ["editingteacher"]}
    return auth(make_token(settings, "importer", course_roles=roles))


@pytest.fixture
def student(settings: Settings, seed: Seed) -> dict[str, str]:
    return auth(make_token(settings, "student", course_roles={seed.course_id: ["student"]}))


@pytest.fixture
def admin(settings: Settings) -> dict[str, str]:
    return auth(make_token(settings, "root", roles=["admin"]))


async def logged(app: FastAPI, instance_id: int) -> list[LogEvent]:
    async with app.state.sessionmaker() as session:
        events = await LogRepo(session).list_for_instance(instance_id)
    # Oldest first reads better in assertions.
    return list(reversed(events))
