"""
bbb_activity.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Resolve instances for a principal and enforce course-level capabilities.
- Coordinate the conferencing client, broker and activity log.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services take explicit collaborators (session, settings, client, principal) so
# tests can hand them fakes without going through FastAPI.
