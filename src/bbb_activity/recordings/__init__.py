"""
bbb_activity.recordings

Recordings table package.

Responsibilities:
- Row/column building and search filtering for the recordings table.
"""

# Package marker.
