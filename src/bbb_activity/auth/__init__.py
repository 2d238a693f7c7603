"""
bbb_activity.auth

Authentication/authorization package.

Responsibilities:
- JWT helpers and validation.
- Capability resolution from role archetypes.
- FastAPI auth dependencies (Principal).
"""

# Package marker.
