"""Pytest fixtures for PostgreSQL store integration tests.

Tests skip when TEST_DATABASE_URL is not set. The database must already
be migrated (``alembic upgrade head``).
"""

import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from leadrouter.db.pool import PostgresPool


@pytest.fixture(scope="session")
def postgres_dsn() -> str:
    """Get PostgreSQL DSN for tests."""
    dsn = os.environ.get("TEST_DATABASE_URL")
    if not dsn:
        pytest.skip("TEST_DATABASE_URL not set")
    return dsn


@pytest_asyncio.fixture(scope="function")
async def postgres_pool(postgres_dsn: str) -> AsyncIterator[PostgresPool]:
    """Connected pool over empty tables.

    Uses function scope to avoid event loop issues across tests.
    """
    pool = PostgresPool(dsn=postgres_dsn, min_size=1, max_size=4)
    await pool.connect()
    async with pool.acquire() as conn:
        # TRUNCATE is not a row-level DELETE, so the append-only trigger allows it
        await conn.execute("TRUNCATE lead_rules, leads, audit_entries")
    try:
        yield pool
    finally:
        await pool.close()
