"""Alembic environment for the leadrouter schema.

Revisions are hand-written ``op`` calls; there is no ORM metadata to
autogenerate from. Online runs go through SQLAlchemy's asyncpg dialect.
"""

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from leadrouter.db.pool import DSN_ENV_VARS

VERSION_TABLE = "leadrouter_alembic_version"

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def get_database_url() -> str:
    """The first DSN env var that is set, else sqlalchemy.url from alembic.ini."""
    url = next(
        (os.environ[name] for name in DSN_ENV_VARS if os.environ.get(name)),
        config.get_main_option("sqlalchemy.url", ""),
    )
    scheme, sep, rest = url.partition("://")
    if scheme in ("postgres", "postgresql"):
        return f"postgresql+asyncpg{sep}{rest}"
    return url


def _configure(**kwargs: object) -> None:
    context.configure(target_metadata=None, version_table=VERSION_TABLE, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)


async def _run_online() -> None:
    engine = create_async_engine(get_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(
        url=get_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    asyncio.run(_run_online())
