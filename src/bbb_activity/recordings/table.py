"""
bbb_activity.recordings.table

Recordings table view.

Responsibilities:
- Turn recordings into table rows (escaped HTML cells, action bar for managers).
- Describe the columns the table shows.
- Filter rows the way the search box does.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from markupsafe import Markup, escape

from bbb_activity.conference.broker import RecordingAction
from bbb_activity.conference.client import Recording
from bbb_activity.lang import get_string

COLUMNS = ("playback", "recording", "description", "date", "duration")


def columns(*, managerecordings: bool) -> list[dict[str, Any]]:
    keys = list(COLUMNS)
    if managerecordings:
        keys.append("actionbar")
    return [
        {
            "key": key,
            "label": get_string(f"view_recording_list_{key}"),
            "sortable": key in ("recording", "date", "duration"),
            "allowHTML": key in ("playback", "recording", "description", "actionbar"),
        }
        for key in keys
    ]


def available_actions(recording: Recording) -> list[RecordingAction]:
    actions = [RecordingAction.unpublish if recording.published else RecordingAction.publish]
    if recording.protected is not None:
        actions.append(RecordingAction.unprotect if recording.protected else RecordingAction.protect)
    actions.append(RecordingAction.delete)
    return actions


def _playback_cell(recording: Recording) -> Markup:
    if not recording.published:
        return Markup("")
    links = [
        Markup('<a href="#" data-href="{url}" class="btn btn-sm btn-default">{label}</a>').format(
            url=p.url, label=p.type
        )
        for p in recording.playbacks
    ]
    return Markup(" ").join(links)


def _actionbar_cell(recording: Recording) -> Markup:
    links = [
        Markup(
            '<a href="#" data-action="{action}" data-require-confirmation="{confirm}">{label}</a>'
        ).format(
            action=action.value,
            confirm="1" if action.requires_confirmation else "0",
            label=get_string(f"view_recording_{action.value}"),
        )
        for action in available_actions(recording)
    ]
    return Markup('<div class="d-flex" data-recordingid="{id}">{links}</div>').format(
        id=recording.record_id, links=Markup("").join(links)
    )


def format_date(start_time_ms: int) -> str:
    if not start_time_ms:
        return ""
    date = datetime.fromtimestamp(start_time_ms / 1000, tz=UTC)
    return date.strftime("%A, %d %B %Y")


def build_row(recording: Recording, *, managerecordings: bool) -> dict[str, Any]:
    row: dict[str, Any] = {
        "recordingid": recording.record_id,
        "playback": str(_playback_cell(recording)),
        "recording": str(Markup("<span>{}</span>").format(recording.display_name)),
        "description": str(Markup("<span>{}</span>").format(recording.description)),
        "date": recording.start_time,
        "date_formatted": format_date(recording.start_time),
        "duration": recording.duration_minutes,
        "published": recording.published,
        "protected": recording.protected,
        "imported": recording.imported,
    }
    if managerecordings:
        row["actionbar"] = str(_actionbar_cell(recording))
    return row


def build_rows(recordings: Iterable[Recording], *, managerecordings: bool) -> list[dict[str, Any]]:
    # Newest first, as the table opens sorted by date.
    ordered = sorted(recordings, key=lambda r: r.start_time, reverse=True)
    return [build_row(r, managerecordings=managerecordings) for r in ordered]


def filter_rows(rows: Sequence[Mapping[str, Any]], text: str) -> list[Mapping[str, Any]]:
    """
    Keep rows whose rendered name or description contains `text`.

    Matching is case-insensitive and runs against the `<span>` markup of the
    cell, so the search text is compared with the escaped HTML the user sees.
    """

    if not text:
        return list(rows)
    rsearch = re.compile(
        rf"<span>.*?{re.escape(str(escape(text)))}.*?</span>", re.IGNORECASE
    )
    kept: list[Mapping[str, Any]] = []
    for row in rows:
        name = row.get("recording")
        if name and rsearch.search(name):
            kept.append(row)
            continue
        description = row.get("description")
        if description and rsearch.search(description):
            kept.append(row)
    return kept


def table_data(
    *,
    activity: str,
    rows: Sequence[Mapping[str, Any]],
    profile_features: Sequence[str],
    managerecordings: bool,
    locale: str,
    ping_interval: int,
) -> dict[str, Any]:
    return {
        "status": True,
        "tabledata": {
            "activity": activity,
            "ping_interval": ping_interval,
            "locale": locale,
            "profile_features": list(profile_features),
            "columns": columns(managerecordings=managerecordings),
            # The client table parses this field itself.
            "data": json.dumps(list(rows)),
        },
    }


# --- Module Notes -----------------------------------------------------------
# Cells are escaped with markupsafe; only the fixed wrappers above are trusted markup.
