"""asyncpg pool shared by the PostgreSQL rule, lead and audit stores."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

from leadrouter.config.models.storage import PostgresConfig
from leadrouter.db.errors import ConnectionError
from leadrouter.observability.logging import get_logger

logger = get_logger(__name__)

DSN_ENV_VARS = ("LEADROUTER_DATABASE_URL", "DATABASE_URL")


def resolve_dsn() -> str:
    """DSN from LEADROUTER_DATABASE_URL or DATABASE_URL.

    Falls back to the POSTGRES_* variables used by the docker-compose
    setup, then to a local leadrouter database.
    """
    for name in DSN_ENV_VARS:
        if dsn := os.environ.get(name):
            return dsn

    env = os.environ.get
    return (
        f"postgresql://{env('POSTGRES_USER', 'leadrouter')}:{env('POSTGRES_PASSWORD', 'leadrouter')}"
        f"@{env('POSTGRES_HOST', 'localhost')}:{env('POSTGRES_PORT', '5432')}"
        f"/{env('POSTGRES_DB', 'leadrouter')}"
    )


class PostgresPool:
    """Lazily connected asyncpg pool.

    Stores call ``acquire()`` for reads and ``transaction()`` for writes
    that must land together, such as a lead update and its audit row.
    Driver errors raised inside either block surface as
    ``leadrouter.db.errors.ConnectionError``.
    """

    def __init__(
        self,
        dsn: str | None = None,
        min_size: int = 2,
        max_size: int = 10,
        max_inactive_connection_lifetime: float = 300.0,
        command_timeout: float = 30.0,
    ) -> None:
        self._dsn = dsn or resolve_dsn()
        self._pool_kwargs = {
            "min_size": min_size,
            "max_size": max_size,
            "max_inactive_connection_lifetime": max_inactive_connection_lifetime,
            "command_timeout": command_timeout,
        }
        self._pool: asyncpg.Pool | None = None

    @classmethod
    def from_config(cls, config: PostgresConfig, dsn: str | None = None) -> "PostgresPool":
        return cls(
            dsn=dsn,
            min_size=config.min_pool_size,
            max_size=config.max_pool_size,
            max_inactive_connection_lifetime=config.max_inactive_connection_lifetime,
            command_timeout=config.command_timeout,
        )

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Open the pool; a no-op when already open."""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(dsn=self._dsn, **self._pool_kwargs)
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_pool_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to PostgreSQL: {e}", cause=e) from e
        logger.info(
            "postgres_pool_connected",
            min_size=self._pool_kwargs["min_size"],
            max_size=self._pool_kwargs["max_size"],
        )

    async def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("postgres_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection, connecting the pool on first use."""
        await self.connect()
        assert self._pool is not None
        try:
            async with self._pool.acquire() as connection:
                yield connection
        except asyncpg.PostgresError as e:
            logger.error("postgres_query_failed", error=str(e), sqlstate=e.sqlstate)
            raise ConnectionError(f"PostgreSQL error: {e}", cause=e) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection inside a transaction, committed on clean exit."""
        async with self.acquire() as connection, connection.transaction():
            yield connection

    async def health_check(self) -> bool:
        """True if the pool is open and answers ``SELECT 1``."""
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except (OSError, asyncpg.PostgresError) as e:
            logger.warning("postgres_health_check_failed", error=str(e))
            return False
        return True
