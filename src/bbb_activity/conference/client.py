"""
bbb_activity.conference.client

HTTP client boundary towards the BigBlueButton conferencing server.

Responsibilities:
- Sign API calls with the shared-secret checksum.
- Parse XML responses and raise `ConferenceServerError` on FAILED returncodes.
- Map recordings into typed `Recording` values.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any
from urllib.parse import urlencode
from xml.parsers.expat import ExpatError

import httpx
import xmltodict

from bbb_activity.errors import ConferenceServerError
from bbb_activity.observability.logging import get_logger
from bbb_activity.settings import Settings

log = get_logger(__name__)

# Elements that may repeat; xmltodict returns a dict for a single child otherwise.
_FORCE_LIST = ("recording", "format")


def checksum(call: str, query: str, secret: str) -> str:
    return hashlib.sha1(f"{call}{query}{secret}".encode()).hexdigest()


def _as_bool(value: Any) -> bool:
    return str(value).strip().lower() == "true"


def _as_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


@dataclass(slots=True)
class Playback:
    type: str
    url: str
    length: int = 0


@dataclass(slots=True)
class Recording:
    record_id: str
    meeting_id: str
    name: str
    published: bool
    start_time: int
    end_time: int
    protected: bool | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    playbacks: list[Playback] = field(default_factory=list)
    imported: bool = False

    @property
    def display_name(self) -> str:
        return self.metadata.get("bbb-recording-name") or self.metadata.get("meetingName") or self.name

    @property
    def description(self) -> str:
        return self.metadata.get("bbb-recording-description") or ""

    @property
    def duration_minutes(self) -> int:
        # Playback length is reported in minutes; fall back to the time window.
        lengths = [p.length for p in self.playbacks if p.length]
        if lengths:
            return max(lengths)
        if self.end_time > self.start_time:
            return (self.end_time - self.start_time) // 60000
        return 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Recording:
        values = dict(data)
        values["playbacks"] = [Playback(**p) for p in values.get("playbacks", [])]
        return cls(**values)

    @classmethod
    def from_xml(cls, node: Mapping[str, Any]) -> Recording:
        metadata = {k: (v or "") for k, v in (node.get("metadata") or {}).items()}
        playback = node.get("playback") or {}
        formats = playback.get("format") or []
        protected = node.get("protected")
        return cls(
            record_id=str(node.get("recordID", "")),
            meeting_id=str(node.get("meetingID", "")),
            name=str(node.get("name") or ""),
            published=_as_bool(node.get("published")),
            protected=None if protected is None else _as_bool(protected),
            start_time=_as_int(node.get("startTime")),
            end_time=_as_int(node.get("endTime")),
            metadata=metadata,
            playbacks=[
                Playback(type=str(f.get("type", "")), url=str(f.get("url", "")), length=_as_int(f.get("length")))
                for f in formats
            ],
        )


class ConferenceClient:
    """
    Thin wrapper over the server's query-string API.

    No retries: transport errors propagate to the caller as `httpx.HTTPError`.
    """

    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    def action_url(self, call: str, params: Mapping[str, Any] | None = None) -> str:
        query = urlencode({k: v for k, v in (params or {}).items() if v is not None})
        digest = checksum(call, query, self._settings.shared_secret)
        sep = "&" if query else ""
        return f"{self._settings.server_url}api/{call}?{query}{sep}checksum={digest}"

    async def _call(self, call: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        r = await self._http.get(self.action_url(call, params))
        r.raise_for_status()
        response = _parse(r.text)
        if response.get("returncode") != "SUCCESS":
            raise ConferenceServerError(
                str(response.get("messageKey") or "serverFailure"),
                str(response.get("message") or "The server could not process the request"),
            )
        return response

    async def server_version(self) -> str | None:
        # The API root is unauthenticated and reports the server version.
        r = await self._http.get(f"{self._settings.server_url}api")
        r.raise_for_status()
        response = _parse(r.text)
        if response.get("returncode") != "SUCCESS":
            return None
        version = response.get("version")
        return str(version) if version else None

    async def get_recordings(self, meeting_ids: Sequence[str]) -> list[Recording]:
        if not meeting_ids:
            return []
        response = await self._call("getRecordings", {"meetingID": ",".join(meeting_ids)})
        nodes = (response.get("recordings") or {}).get("recording") or []
        recordings = [Recording.from_xml(n) for n in nodes]
        log.debug("recordings_fetched", count=len(recordings), meetings=len(meeting_ids))
        return recordings

    async def publish_recordings(self, record_id: str, *, publish: bool) -> None:
        await self._call(
            "publishRecordings", {"recordID": record_id, "publish": "true" if publish else "false"}
        )

    async def delete_recordings(self, record_id: str) -> None:
        await self._call("deleteRecordings", {"recordID": record_id})

    async def update_recordings(self, record_id: str, params: Mapping[str, Any]) -> None:
        await self._call("updateRecordings", {"recordID": record_id, **params})

    async def is_meeting_running(self, meeting_id: str) -> bool:
        response = await self._call("isMeetingRunning", {"meetingID": meeting_id})
        return _as_bool(response.get("running"))

    async def create_meeting(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._call("create", params)

    def join_url(
        self,
        *,
        meeting_id: str,
        fullname: str,
        password: str,
        logout_url: str,
        user_id: str,
    ) -> str:
        return self.action_url(
            "join",
            {
                "meetingID": meeting_id,
                "fullName": fullname,
                "password": password,
                "logoutURL": logout_url,
                "userID": user_id,
            },
        )


def _parse(text: str) -> dict[str, Any]:
    try:
        doc = xmltodict.parse(text, force_list=_FORCE_LIST)
    except ExpatError as e:
        raise ConferenceServerError("invalidResponse", f"Unparseable server response: {e}") from e
    response = doc.get("response") if isinstance(doc, dict) else None
    if not isinstance(response, dict):
        raise ConferenceServerError("invalidResponse", "Missing <response> element")
    return response


# --- Module Notes -----------------------------------------------------------
# The same shared secret signs API calls (sha1 checksum) and the server's own
# callbacks (JWT, see `conference.broker`).
