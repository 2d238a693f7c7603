"""
bbb_activity.api.errors

Translation of domain errors into HTTP errors.

Responsibilities:
- Map each domain exception to a status code and detail.
- Offer `domain_errors()`, used by routers around service calls.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import httpx
from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_502_BAD_GATEWAY,
)

from bbb_activity.auth.jwt import JwtValidationError
from bbb_activity.errors import (
    ConferenceServerError,
    CourseNotFound,
    GroupNotFound,
    InstanceNotFound,
    MeetingNotAvailable,
    RecordingNotFound,
    RequiredCapabilityError,
    UnknownRecordingAction,
)
from bbb_activity.observability.logging import get_logger

log = get_logger(__name__)


@contextmanager
def domain_errors() -> Iterator[None]:
    try:
        yield
    except InstanceNotFound as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Activity not found") from e
    except CourseNotFound as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Course not found") from e
    except GroupNotFound as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Group not found") from e
    except RecordingNotFound as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=str(e)) from e
    except UnknownRecordingAction as e:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except RequiredCapabilityError as e:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=str(e)) from e
    except MeetingNotAvailable as e:
        raise HTTPException(status_code=HTTP_409_CONFLICT, detail=str(e)) from e
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e
    except ConferenceServerError as e:
        log.warning("conference_server_failed", message_key=e.message_key)
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=e.message) from e
    except httpx.HTTPError as e:
        # Not retried; the caller sees the failure.
        log.warning("conference_server_unreachable", error=type(e).__name__)
        raise HTTPException(
            status_code=HTTP_502_BAD_GATEWAY, detail="Conferencing server unavailable"
        ) from e
