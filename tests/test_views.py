"""
tests.test_views

Activity pages, join/logout redirects, import and broker callbacks.
"""

from __future__ import annotations

import time
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
import pytest
from fastapi import FastAPI

from bbb_activity.db.models import ActivityInstance, LogType

from conftest import SERVER_URL, SHARED_SECRET, FakeServer, Seed, auth, logged, make_token

MOD = "/mod/bigbluebuttonbn"


async def _update_instance(app: FastAPI, instance_id: int, **values) -> None:
    async with app.state.sessionmaker() as session:
        row = await session.get(ActivityInstance, instance_id)
        for key, value in values.items():
            setattr(row, key, value)
        await session.commit()


@pytest.mark.asyncio
async def test_view_state_has_no_credentials(
    client: httpx.AsyncClient, seed: Seed, teacher: dict[str, str]
) -> None:
    r = await client.get(f"{MOD}/view", params={"id": seed.cmid}, headers=teacher)
    assert r.status_code == 200
    state = r.json()
    assert state["meetingid"] == seed.meeting_id
    assert state["meetingname"] == "Weekly lecture"
    assert state["can_join"] is True
    assert state["moderator"] is True
    assert state["serverversion"] == "2.7"
    assert state["import_url"].endswith(f"/import_view?bn={seed.instance_id}")
    assert "mod-secret" not in r.text
    assert "viewer-secret" not in r.text


@pytest.mark.asyncio
async def test_view_with_group(client: httpx.AsyncClient, seed: Seed, student: dict[str, str]) -> None:
    r = await client.get(f"{MOD}/view", params={"id": seed.cmid, "group": seed.group_id}, headers=student)
    state = r.json()
    assert state["meetingid"] == f"{seed.meeting_id}[{seed.group_id}]"
    assert state["meetingname"] == "Weekly lecture (Group A)"
    assert state["import_url"] is None


@pytest.mark.asyncio
async def test_unknown_group_is_not_found(
    client: httpx.AsyncClient, seed: Seed, student: dict[str, str], fake_server: FakeServer
) -> None:
    r = await client.get(f"{MOD}/view", params={"id": seed.cmid, "group": 999}, headers=student)
    assert r.status_code == 404
    assert r.json()["detail"] == "Group not found"

    r = await client.get(
        f"{MOD}/bbb_view", params={"action": "join", "id": seed.cmid, "group": 999}, headers=student
    )
    assert r.status_code == 404
    assert fake_server.created == []


@pytest.mark.asyncio
async def test_moderator_join_creates_the_meeting(
    app: FastAPI,
    client: httpx.AsyncClient,
    seed: Seed,
    teacher: dict[str, str],
    fake_server: FakeServer,
) -> None:
    r = await client.get(f"{MOD}/bbb_view", params={"action": "join", "id": seed.cmid}, headers=teacher)
    assert r.status_code == 303
    location = r.headers["location"]
    assert location.startswith(f"{SERVER_URL}api/join?")
    query = parse_qs(urlparse(location).query)
    assert query["password"] == ["mod-secret"]
    assert query["meetingID"] == [seed.meeting_id]
    assert query["userID"] == ["teacher"]

    (created,) = fake_server.created
    assert created["meetingID"] == seed.meeting_id
    assert created["name"] == "Weekly lecture"
    assert created["record"] == "true"
    assert created["welcome"].endswith("This session may be recorded.")
    assert "bbb_broker?action=recording_ready" in created["meta_bbb-recording-ready-url"]
    assert created["meta_bbb-origin"] == "LMS"

    assert [e.log for e in await logged(app, seed.instance_id)] == [LogType.create, LogType.join]


@pytest.mark.asyncio
async def test_viewer_joins_running_meeting(
    client: httpx.AsyncClient, seed: Seed, student: dict[str, str], fake_server: FakeServer
) -> None:
    fake_server.running.add(seed.meeting_id)
    r = await client.get(f"{MOD}/bbb_view", params={"action": "join", "id": seed.cmid}, headers=student)
    assert r.status_code == 303
    assert parse_qs(urlparse(r.headers["location"]).query)["password"] == ["viewer-secret"]
    assert fake_server.created == []


@pytest.mark.asyncio
async def test_viewer_waits_for_moderator(
    app: FastAPI, client: httpx.AsyncClient, seed: Seed, student: dict[str, str], fake_server: FakeServer
) -> None:
    await _update_instance(app, seed.instance_id, wait=True)
    r = await client.get(f"{MOD}/bbb_view", params={"action": "join", "id": seed.cmid}, headers=student)
    assert r.status_code == 409
    assert fake_server.created == []


@pytest.mark.asyncio
async def test_join_outside_schedule(
    app: FastAPI, client: httpx.AsyncClient, seed: Seed, teacher: dict[str, str]
) -> None:
    await _update_instance(app, seed.instance_id, openingtime=int(time.time()) + 3600)
    r = await client.get(f"{MOD}/bbb_view", params={"action": "join", "id": seed.cmid}, headers=teacher)
    assert r.status_code == 409
    assert r.json()["detail"] == "This conference has not started yet."


@pytest.mark.asyncio
async def test_guest_cannot_join(
    client: httpx.AsyncClient, settings, seed: Seed
) -> None:
    guest = auth(make_token(settings, "guest", course_roles={seed.course_id: ["guest"]}))
    r = await client.get(f"{MOD}/bbb_view", params={"action": "join", "id": seed.cmid}, headers=guest)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_logout_redirects_to_view(
    app: FastAPI, client: httpx.AsyncClient, seed: Seed, student: dict[str, str]
) -> None:
    r = await client.get(f"{MOD}/bbb_view", params={"action": "logout", "id": seed.cmid}, headers=student)
    assert r.status_code == 303
    assert r.headers["location"] == f"https://lms.example.test{MOD}/view?id={seed.cmid}"
    assert [e.log for e in await logged(app, seed.instance_id)] == [LogType.logout]


@pytest.mark.asyncio
async def test_recordings_page_with_search(
    client: httpx.AsyncClient, settings, seed: Seed
) -> None:
    # Browsers carry the token in a cookie.
    token = make_token(settings, "teacher", course_roles={seed.course_id: ["editingteacher"]})
    cookie = {"Cookie": f"bbb_token={token}"}
    r = await client.get(f"{MOD}/recordings", params={"bn": seed.instance_id}, headers=cookie)
    assert r.status_code == 200
    assert "Lecture one" in r.text
    assert "Group session" in r.text
    assert 'data-action="delete"' in r.text
    assert "Working on &lt;b&gt;Geometry&lt;/b&gt;" in r.text

    r = await client.get(f"{MOD}/recordings", params={"bn": seed.instance_id, "search": "geometry"}, headers=cookie)
    assert "Group session" in r.text
    assert "Lecture one" not in r.text


@pytest.mark.asyncio
async def test_recordings_page_for_viewers(
    client: httpx.AsyncClient, seed: Seed, student: dict[str, str]
) -> None:
    r = await client.get(f"{MOD}/recordings", params={"bn": seed.instance_id}, headers=student)
    assert r.status_code == 200
    assert "Lecture one" in r.text
    assert "Group session" not in r.text
    assert "data-action" not in r.text


@pytest.mark.asyncio
async def test_recordings_page_action_form(
    client: httpx.AsyncClient, seed: Seed, teacher: dict[str, str], fake_server: FakeServer
) -> None:
    r = await client.post(
        f"{MOD}/recordings",
        data={"bn": seed.instance_id, "recordingid": "rec-2", "action": "publish", "search": "group"},
        headers=teacher,
    )
    assert r.status_code == 303
    assert r.headers["location"] == f"{MOD}/recordings?bn={seed.instance_id}&search=group"
    assert fake_server.recordings["rec-2"]["published"] is True


@pytest.mark.asyncio
async def test_import_from_another_course(
    app: FastAPI,
    client: httpx.AsyncClient,
    seed: Seed,
    importer: dict[str, str],
    fake_server: FakeServer,
) -> None:
    r = await client.get(f"{MOD}/import_view", params={"bn": seed.instance_id}, headers=importer)
    assert r.status_code == 200
    assert "Chemistry 201" in r.text

    r = await client.post(
        f"{MOD}/import_view", data={"bn": seed.instance_id, "tc": seed.other_course_id}, headers=importer
    )
    assert r.status_code == 303
    assert r.headers["location"] == f"{MOD}/import_view?bn={seed.instance_id}&tc={seed.other_course_id}"

    r = await client.get(
        f"{MOD}/import_view", params={"bn": seed.instance_id, "tc": seed.other_course_id}, headers=importer
    )
    assert "Titration lab" in r.text

    r = await client.post(
        f"{MOD}/import_view",
        data={"bn": seed.instance_id, "tc": seed.other_course_id, "recordingid": "rec-lab"},
        headers=importer,
    )
    assert r.status_code == 303
    assert [e.log for e in await logged(app, seed.instance_id)] == [LogType.import_]

    listing = await client.get(f"/v1/instances/{seed.instance_id}/recordings", params={"search": "titration"}, headers=importer)
    assert '"imported": true' in listing.json()["tabledata"]["data"]

    # Deleting an imported recording only drops the link.
    r = await client.post(f"/v1/instances/{seed.instance_id}/recordings/rec-lab/delete", headers=importer)
    assert r.status_code == 200
    assert "rec-lab" in fake_server.recordings
    assert LogType.import_ not in [e.log for e in await logged(app, seed.instance_id)]


@pytest.mark.asyncio
async def test_import_requires_managing_the_source_course(
    app: FastAPI,
    client: httpx.AsyncClient,
    seed: Seed,
    teacher: dict[str, str],
    fake_server: FakeServer,
) -> None:
    r = await client.get(f"{MOD}/import_view", params={"bn": seed.instance_id}, headers=teacher)
    assert r.status_code == 200
    assert "Physics 101" in r.text
    assert "Chemistry 201" not in r.text

    r = await client.get(
        f"{MOD}/import_view", params={"bn": seed.instance_id, "tc": seed.other_course_id}, headers=teacher
    )
    assert r.status_code == 403
    assert "Titration lab" not in r.text

    r = await client.post(
        f"{MOD}/import_view",
        data={"bn": seed.instance_id, "tc": seed.other_course_id, "recordingid": "rec-lab"},
        headers=teacher,
    )
    assert r.status_code == 403
    assert await logged(app, seed.instance_id) == []
    assert "getRecordings" not in fake_server.calls


@pytest.mark.asyncio
async def test_import_requires_managing_recordings(
    client: httpx.AsyncClient, seed: Seed, student: dict[str, str]
) -> None:
    r = await client.get(f"{MOD}/import_view", params={"bn": seed.instance_id}, headers=student)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_recording_ready_callback(app: FastAPI, client: httpx.AsyncClient, seed: Seed) -> None:
    token = jwt.encode({"meeting_id": seed.meeting_id, "record_id": "rec-9"}, SHARED_SECRET, algorithm="HS256")
    r = await client.post(
        f"{MOD}/bbb_broker",
        params={"action": "recording_ready", "bigbluebuttonbn": seed.instance_id},
        data={"signed_parameters": token},
    )
    assert r.status_code == 200
    assert r.json()["record_id"] == "rec-9"
    (event,) = await logged(app, seed.instance_id)
    assert event.log is LogType.recording_ready
    assert event.meta == {"recordingid": "rec-9"}


@pytest.mark.asyncio
async def test_recording_ready_rejects_foreign_meetings(client: httpx.AsyncClient, seed: Seed) -> None:
    token = jwt.encode({"meeting_id": seed.other_meeting_id, "record_id": "r"}, SHARED_SECRET, algorithm="HS256")
    r = await client.get(
        f"{MOD}/bbb_broker",
        params={"action": "recording_ready", "bigbluebuttonbn": seed.instance_id, "signed_parameters": token},
    )
    assert r.status_code == 401

    forged = jwt.encode({"meeting_id": seed.meeting_id, "record_id": "r"}, "x" * 64, algorithm="HS256")
    r = await client.get(
        f"{MOD}/bbb_broker",
        params={"action": "recording_ready", "bigbluebuttonbn": seed.instance_id, "signed_parameters": forged},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_meeting_events_callback(app: FastAPI, client: httpx.AsyncClient, seed: Seed) -> None:
    payload = {
        "data": {
            "attributes": {
                "meeting": {"internal-meeting-id": "int-1", "external-meeting-id": seed.meeting_id},
                "attendees": [{"ext-user-id": "teacher", "name": "Teacher", "moderator": True, "duration": 60}],
            }
        }
    }
    url = f"{MOD}/bbb_broker?action=meeting_events&bigbluebuttonbn={seed.instance_id}"

    r = await client.post(url, json=payload)
    assert r.status_code == 401

    token = jwt.encode({"exp": int(time.time()) + 60}, SHARED_SECRET, algorithm="HS512")
    r = await client.post(url, json=payload, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "attendees": 1}
    (event,) = await logged(app, seed.instance_id)
    assert event.log is LogType.meeting_events
    assert event.meta["attendees"][0]["ext_user_id"] == "teacher"
