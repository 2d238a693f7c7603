"""
bbb_activity.services.external

Batched AJAX service for the recordings table.

Responsibilities:
- Register the external functions the browser table calls by `methodname`.
- Validate each call's `args` with a Pydantic model before dispatching.
- Run a batch in order, stopping at the first failing call.

Notes:
- The browser issues an update followed by a list refresh in the same batch,
  so a failed update must not be followed by a (misleading) refreshed list.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from bbb_activity.errors import (
    ConferenceServerError,
    InstanceNotFound,
    RecordingNotFound,
    RequiredCapabilityError,
    UnknownRecordingAction,
)
from bbb_activity.observability.logging import get_logger
from bbb_activity.services.recording_service import RecordingService

log = get_logger(__name__)

ALPHANUMEXT = r"^[A-Za-z0-9_-]+$"


class ServiceCall(BaseModel):
    index: int | None = None
    methodname: str = Field(min_length=1, max_length=128)
    args: dict[str, Any] = Field(default_factory=dict)


class ListTableArgs(BaseModel):
    bigbluebuttonbnid: int = Field(ge=1)


class RecordingOptions(BaseModel):
    # Metadata to edit, keyed by editable field (`name`, `description`).
    meta: dict[str, str] | None = None


class UpdateRecordingArgs(BaseModel):
    bigbluebuttonbnid: int = Field(ge=1)
    recordingid: str = Field(pattern=ALPHANUMEXT, max_length=256)
    action: str = Field(pattern=r"^[A-Za-z]+$", max_length=32)
    options: RecordingOptions | None = None


Handler = Callable[[RecordingService, Any], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class ExternalFunction:
    methodname: str
    args_model: type[BaseModel]
    handler: Handler


async def _list_table(service: RecordingService, args: ListTableArgs) -> dict[str, Any]:
    return await service.list_table(instance_id=args.bigbluebuttonbnid)


async def _update_recording(service: RecordingService, args: UpdateRecordingArgs) -> dict[str, Any]:
    return await service.update_recording(
        instance_id=args.bigbluebuttonbnid,
        recording_id=args.recordingid,
        action=args.action,
        options=args.options.model_dump(exclude_none=True) if args.options else None,
    )


FUNCTIONS: dict[str, ExternalFunction] = {
    f.methodname: f
    for f in (
        ExternalFunction("mod_bigbluebutton_recording_list_table", ListTableArgs, _list_table),
        ExternalFunction(
            "mod_bigbluebutton_recording_update_recording", UpdateRecordingArgs, _update_recording
        ),
    )
}


class UnknownExternalFunction(LookupError):
    def __init__(self, methodname: str) -> None:
        super().__init__(f"Can't find data record in database table external_functions ({methodname})")
        self.methodname = methodname


def _exception(e: Exception) -> dict[str, Any]:
    if isinstance(e, ValidationError):
        errorcode, message = "invalidparameter", f"Invalid parameter value detected: {e.errors()[0]['msg']}"
    elif isinstance(e, UnknownRecordingAction):
        errorcode, message = "coding_error", str(e)
    elif isinstance(e, RequiredCapabilityError):
        errorcode, message = "nopermissions", str(e)
    elif isinstance(e, InstanceNotFound):
        errorcode, message = "invalidrecord", "Can't find data record in database"
    elif isinstance(e, (RecordingNotFound, UnknownExternalFunction)):
        errorcode, message = "invalidrecord", str(e)
    elif isinstance(e, ConferenceServerError):
        errorcode, message = e.message_key, e.message
    else:
        errorcode, message = "connectionerror", f"Unable to reach the conferencing server: {e}"
    return {"exception": type(e).__name__, "errorcode": errorcode, "message": message}


async def execute_batch(
    service: RecordingService, calls: Sequence[ServiceCall]
) -> list[dict[str, Any]]:
    """
    Execute `calls` in order and return one result per executed call.

    A failing call contributes `{"error": true, "exception": {...}}` and ends
    the batch; later calls are not run.
    """

    results: list[dict[str, Any]] = []
    for call in calls:
        try:
            fn = FUNCTIONS.get(call.methodname)
            if fn is None:
                raise UnknownExternalFunction(call.methodname)
            args = fn.args_model.model_validate(call.args)
            data = await fn.handler(service, args)
        except (
            ValidationError,
            UnknownExternalFunction,
            UnknownRecordingAction,
            RecordingNotFound,
            RequiredCapabilityError,
            InstanceNotFound,
            ConferenceServerError,
            httpx.HTTPError,
        ) as e:
            log.warning("external_call_failed", methodname=call.methodname, error=type(e).__name__)
            results.append({"error": True, "exception": _exception(e)})
            break
        results.append({"error": False, "data": data})
    return results


# --- Module Notes -----------------------------------------------------------
# Anything not listed in `execute_batch` is a bug and propagates as a 500.
