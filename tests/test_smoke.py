"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and DB readiness probe works in test mode.
- Ensure the dev token endpoint is only available outside prod.
"""

from __future__ import annotations

import httpx
import pytest

from bbb_activity import __version__
from bbb_activity.api.app import create_app
from bbb_activity.auth.deps import jwt_cfg
from bbb_activity.auth.jwt import decode_and_validate
from bbb_activity.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "service": "bbb-activity", "version": __version__}

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json() == {"status": "ready", "instances": 0}
    assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_dev_token_carries_course_roles(client: httpx.AsyncClient, settings: Settings) -> None:
    r = await client.post(
        "/v1/dev/token",
        json={"subject": "u1", "fullname": "Ada Lovelace", "course_roles": {"3": ["student"]}},
    )
    assert r.status_code == 200
    token = r.json()["access_token"]
    assert f"bbb_token={token}" in r.headers["set-cookie"]

    claims = decode_and_validate(cfg=jwt_cfg(settings), token=token)
    assert claims["sub"] == "u1"
    assert claims["name"] == "Ada Lovelace"
    assert claims["course_roles"] == {"3": ["student"]}


@pytest.mark.asyncio
async def test_dev_token_disabled_in_prod(tmp_path) -> None:
    settings = Settings(env="prod", database_url=f"sqlite+aiosqlite:///{tmp_path / 'prod.db'}")
    app = create_app(settings=settings)
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.post("/v1/dev/token", json={"subject": "u1"})
            assert r.status_code == 404


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/instances/1/recordings")
    assert r.status_code == 401
