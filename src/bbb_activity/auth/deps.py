"""
bbb_activity.auth.deps

FastAPI dependency functions for authentication.

Responsibilities:
- Convert a bearer token (or the `bbb_token` cookie) into a typed `Principal`.
- Gate site-level endpoints on a role.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from bbb_activity.api.deps import settings_dep
from bbb_activity.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from bbb_activity.auth.models import Principal
from bbb_activity.settings import Settings

_bearer = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "bbb_token"


def jwt_cfg(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
    )


def get_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    # Browsers following redirects cannot attach a bearer header; fall back to the cookie.
    token = creds.credentials if creds is not None else request.cookies.get(TOKEN_COOKIE)
    if not token:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        payload = decode_and_validate(cfg=jwt_cfg(settings), token=token)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    subject = str(payload.get("sub", ""))
    roles_raw = payload.get("roles", [])
    course_roles_raw = payload.get("course_roles", {})
    if not subject:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    if not isinstance(roles_raw, list) or not isinstance(course_roles_raw, dict):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token roles")

    try:
        course_roles = {
            int(course_id): frozenset(str(r) for r in roles)
            for course_id, roles in course_roles_raw.items()
        }
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token roles") from e

    return Principal(
        subject=subject,
        fullname=str(payload.get("name") or subject),
        roles=frozenset(str(r) for r in roles_raw),
        course_roles=course_roles,
    )


def require_roles(*required: str):
    required_set = frozenset(required)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.is_admin:
            return principal
        if not required_set.issubset(principal.roles):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# Course-level authorization is capability based (`auth.capabilities`) and is
# enforced by the services, which know the course of the instance.
