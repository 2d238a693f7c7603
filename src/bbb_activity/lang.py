"""
bbb_activity.lang

User-facing strings of the activity module.

Responsibilities:
- Hold the English string table.
- Substitute `{name}` placeholders on lookup.
"""

from __future__ import annotations

STRINGS: dict[str, str] = {
    "allparticipants": "All participants",
    "mod_form_field_welcome_default": (
        "Welcome to <b>%%CONFNAME%%</b>!<br><br>For help on how to use BigBlueButton see "
        "these <a href=\"https://bigbluebutton.org/html5\"><u>tutorial videos</u></a>."
        "<br><br>To join the audio bridge click the speaker button. Use a headset to "
        "avoid causing background noise for others."
    ),
    "bbbrecordwarning": "This session may be recorded.",
    "bbbrecordallfromstartwarning": "This session is being recorded from the start.",
    "view_recording_playback": "Play",
    "view_recording_list_recording": "Recording",
    "view_recording_list_description": "Description",
    "view_recording_list_date": "Date",
    "view_recording_list_duration": "Duration",
    "view_recording_list_actionbar": "Toolbar",
    "view_recording_list_playback": "Playback",
    "view_recording_publish": "Publish",
    "view_recording_unpublish": "Unpublish",
    "view_recording_protect": "Protect",
    "view_recording_unprotect": "Unprotect",
    "view_recording_delete": "Delete",
    "view_recording_import": "Import",
    "view_recording_delete_confirmation": "Are you sure you want to delete this recording?",
    "view_message_norecordings": "There are no recordings available.",
    "view_message_conference_not_started": "This conference has not started yet.",
    "view_message_conference_has_ended": "This conference has ended.",
}


def get_string(key: str, **params: object) -> str:
    text = STRINGS.get(key)
    if text is None:
        return f"[[{key}]]"
    return text.format(**params) if params else text
