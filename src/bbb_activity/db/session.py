"""
bbb_activity.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings, enforcing foreign keys on SQLite.
- Create the sessionmaker used by the request-scoped `db_session` dependency.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bbb_activity.settings import Settings


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(settings: Settings) -> AsyncEngine:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        # Off by default in SQLite; groups and instances reference their course.
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Instance rows are still read after the log entry of a request is committed.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
