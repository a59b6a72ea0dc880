"""PostgreSQL implementation of AuditLog.

Uses asyncpg for async database access.
"""

import json
from typing import Any
from uuid import UUID

import asyncpg

from leadrouter.audit.models import AuditAction, AuditEntry
from leadrouter.audit.store import AuditLog
from leadrouter.db.errors import ConflictError, ConnectionError
from leadrouter.db.pool import PostgresPool
from leadrouter.observability.logging import get_logger
from leadrouter.observability.metrics import AUDIT_ENTRIES

logger = get_logger(__name__)

_COLUMNS = """
    id, sequence, lead_id, rule_id, actor_id, action,
    description, details, occurred_at, idempotency_key
"""


async def insert_audit_entry(conn: asyncpg.Connection, entry: AuditEntry) -> AuditEntry:
    """Insert an entry on an existing connection.

    Runs inside the caller's transaction so rule and lead stores can write
    their row and its audit entry in one commit.
    """
    try:
        sequence = await conn.fetchval(
            """
            INSERT INTO audit_entries (
                id, lead_id, rule_id, actor_id, action,
                description, details, occurred_at, idempotency_key
            ) VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8, $9)
            RETURNING sequence
            """,
            entry.id,
            entry.lead_id,
            entry.rule_id,
            entry.actor_id,
            entry.action.value,
            entry.description,
            json.dumps(entry.details),
            entry.timestamp,
            entry.idempotency_key,
        )
    except asyncpg.UniqueViolationError as e:
        raise ConflictError(
            f"Audit entry conflicts with an existing entry: {e}", cause=e
        ) from e
    AUDIT_ENTRIES.labels(action=entry.action.value).inc()
    return entry.model_copy(update={"sequence": sequence})


def row_to_audit_entry(row: Any) -> AuditEntry:
    """Convert database row to AuditEntry model."""
    return AuditEntry(
        id=row["id"],
        sequence=row["sequence"],
        lead_id=row["lead_id"],
        rule_id=row["rule_id"],
        actor_id=row["actor_id"],
        action=AuditAction(row["action"]),
        description=row["description"] or "",
        details=json.loads(row["details"]) if row["details"] else {},
        timestamp=row["occurred_at"],
        idempotency_key=row["idempotency_key"],
    )


class PostgresAuditLog(AuditLog):
    """PostgreSQL implementation of AuditLog.

    Uses asyncpg connection pool for efficient database access.
    Rows are never updated or deleted.
    """

    def __init__(self, pool: PostgresPool) -> None:
        """Initialize with connection pool.

        Args:
            pool: PostgreSQL connection pool
        """
        self._pool = pool

    async def append(self, entry: AuditEntry) -> AuditEntry:
        """Append an entry."""
        try:
            async with self._pool.acquire() as conn:
                stored = await insert_audit_entry(conn, entry)
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_append_audit_error", entry_id=str(entry.id), error=str(e))
            raise ConnectionError(f"Failed to append audit entry: {e}", cause=e) from e
        logger.debug("audit_entry_appended", entry_id=str(entry.id), action=entry.action.value)
        return stored

    async def get_entry(self, entry_id: UUID) -> AuditEntry | None:
        """Get an entry by ID."""
        row = await self._fetchrow(
            f"SELECT {_COLUMNS} FROM audit_entries WHERE id = $1",
            entry_id,
        )
        return row_to_audit_entry(row) if row else None

    async def for_lead(self, lead_id: str) -> list[AuditEntry]:
        """List a lead's entries in chronological order."""
        rows = await self._fetch(
            f"""
            SELECT {_COLUMNS} FROM audit_entries
            WHERE lead_id = $1
            ORDER BY occurred_at ASC, sequence ASC
            """,
            lead_id,
        )
        return [row_to_audit_entry(row) for row in rows]

    async def for_rule(self, rule_id: UUID) -> list[AuditEntry]:
        """List a rule's entries in chronological order."""
        rows = await self._fetch(
            f"""
            SELECT {_COLUMNS} FROM audit_entries
            WHERE rule_id = $1
            ORDER BY occurred_at ASC, sequence ASC
            """,
            rule_id,
        )
        return [row_to_audit_entry(row) for row in rows]

    async def find_by_idempotency_key(
        self,
        lead_id: str,
        idempotency_key: str,
    ) -> AuditEntry | None:
        """Find the entry a dispatch attempt with this key wrote, if any."""
        row = await self._fetchrow(
            f"""
            SELECT {_COLUMNS} FROM audit_entries
            WHERE lead_id = $1 AND idempotency_key = $2
            """,
            lead_id,
            idempotency_key,
        )
        return row_to_audit_entry(row) if row else None

    async def _fetch(self, query: str, *args: Any) -> list[Any]:
        try:
            async with self._pool.acquire() as conn:
                return list(await conn.fetch(query, *args))
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_query_audit_error", error=str(e))
            raise ConnectionError(f"Failed to query audit log: {e}", cause=e) from e

    async def _fetchrow(self, query: str, *args: Any) -> Any:
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchrow(query, *args)
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_query_audit_error", error=str(e))
            raise ConnectionError(f"Failed to query audit log: {e}", cause=e) from e
