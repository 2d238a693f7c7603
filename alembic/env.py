"""
alembic.env

Alembic migration environment for the activity service.

Responsibilities:
- Expose the module's table metadata for autogeneration.
- Run migrations offline (SQL script) or online against `BBB_DATABASE_URL`.

Notes:
- Executed by Alembic, never imported by the FastAPI runtime.
- Migrations run synchronously, so async driver URLs are mapped to their sync
  counterparts (`sqlite+aiosqlite` -> `sqlite`).
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from bbb_activity.db import models  # noqa: F401  # register tables on Base.metadata
from bbb_activity.db.base import Base
from bbb_activity.settings import Settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

_SYNC_DRIVERS = {"sqlite+aiosqlite": "sqlite", "postgresql+asyncpg": "postgresql+psycopg"}


def _get_database_url() -> str:
    url = make_url(os.environ.get("BBB_DATABASE_URL") or Settings().database_url)
    drivername = _SYNC_DRIVERS.get(url.drivername, url.drivername)
    return url.set(drivername=drivername).render_as_string(hide_password=False)


def run_migrations_offline() -> None:
    context.configure(
        url=_get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        # SQLite cannot ALTER most columns in place.
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
