from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from starlette.status import HTTP_404_NOT_FOUND

from bbb_activity.api.deps import settings_dep
from bbb_activity.auth.deps import TOKEN_COOKIE, jwt_cfg
from bbb_activity.auth.jwt import issue_token
from bbb_activity.settings import Settings

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevTokenRequest(BaseModel):
    subject: str = Field(min_length=1, max_length=256)
    fullname: str = Field(default="", max_length=256)
    roles: list[str] = Field(default_factory=list)
    course_roles: dict[int, list[str]] = Field(default_factory=dict)
    ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)


class DevTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/token", response_model=DevTokenResponse)
async def mint_dev_token(
    body: DevTokenRequest,
    response: Response,
    settings: Settings = Depends(settings_dep),
) -> DevTokenResponse:
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")

    token = issue_token(
        cfg=jwt_cfg(settings),
        subject=body.subject,
        roles=body.roles,
        fullname=body.fullname or body.subject,
        course_roles=body.course_roles,
        ttl=timedelta(minutes=body.ttl_minutes),
    )
    # Lets a browser open the server-rendered pages with the same identity.
    response.set_cookie(TOKEN_COOKIE, token, httponly=True, samesite="lax")
    return DevTokenResponse(access_token=token)
