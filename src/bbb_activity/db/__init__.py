"""
bbb_activity.db

Persistence package.

Responsibilities:
- SQLAlchemy declarative base and ORM models.
- Async engine/session factory helpers.
- Repositories for the host records and the module's own tables.
"""

# Package marker.
