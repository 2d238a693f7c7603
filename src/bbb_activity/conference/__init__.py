"""
bbb_activity.conference

Conferencing server boundary.

Responsibilities:
- HTTP client for the server's checksum-signed API.
- Broker applying recording actions and validating server callbacks.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services depend on this boundary, never on raw HTTP or XML.
