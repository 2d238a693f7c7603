"""
bbb_activity.db.init_db

Schema bootstrap for dev and test runs.

Responsibilities:
- Create the host tables (`course`, `groups`, `course_modules`) and the module
  tables (`bigbluebuttonbn`, `bigbluebuttonbn_logs`) when missing.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from bbb_activity.db import models  # noqa: F401  # register tables on Base.metadata
from bbb_activity.db.base import Base
from bbb_activity.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("schema_ready", tables=sorted(Base.metadata.tables))


# --- Module Notes -----------------------------------------------------------
# Prod runs `alembic upgrade head`; the app factory only calls this in dev/test.
