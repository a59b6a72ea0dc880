"""PostgreSQL implementations of RuleStore and LeadStore.

Uses asyncpg for async database access. Rule mutations take a
transaction-level advisory lock, so writers are serialised across every
process sharing the database.
"""

from collections.abc import Collection, Sequence
from typing import Any
from uuid import UUID

import asyncpg

from leadrouter.audit.models import AuditEntry
from leadrouter.audit.stores.postgres import insert_audit_entry
from leadrouter.db.pool import PostgresPool
from leadrouter.observability.logging import get_logger
from leadrouter.observability.metrics import RULE_MUTATIONS
from leadrouter.routing.errors import (
    ConcurrentModificationError,
    LeadNotFoundError,
    RuleNotFoundError,
)
from leadrouter.routing.models import (
    Lead,
    Rule,
    RuleCriteria,
    RuleDraft,
    RulePatch,
    StudyPreferences,
    utc_now,
)
from leadrouter.routing.stores.lead_store import LeadStore
from leadrouter.routing.stores.rule_changes import (
    apply_patch,
    build_rule,
    diff_rules,
    resequence,
    rule_created_entry,
    rule_deleted_entry,
    rule_updated_entry,
)
from leadrouter.routing.stores.rule_store import RuleStore
from leadrouter.routing.validation import RuleValidator

logger = get_logger(__name__)

# pg_advisory_xact_lock key guarding lead_rules writes
RULES_LOCK_KEY = 0x1EAD_0001

_RULE_COLUMNS = """
    id, priority, sequence, criteria_office_id, criteria_study_destination,
    criteria_lead_source, target_office_id, target_consultant_id,
    created_at, updated_at
"""

_LEAD_COLUMNS = """
    id, source, study_destination, status, office_id, assigned_consultant_id,
    name, email, phone, version, created_at, updated_at
"""


class PostgresRuleStore(RuleStore):
    """PostgreSQL implementation of RuleStore.

    Each mutation runs in one transaction: advisory lock, read of the
    current rule set, validation, row write and audit insert.
    """

    def __init__(self, pool: PostgresPool, validator: RuleValidator) -> None:
        """Initialize with connection pool.

        Args:
            pool: PostgreSQL connection pool
            validator: Rule validator run inside the write transaction
        """
        self._pool = pool
        self._validator = validator

    async def get_rule(self, rule_id: UUID) -> Rule | None:
        """Get a rule by ID."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_RULE_COLUMNS} FROM lead_rules WHERE id = $1",
                rule_id,
            )
        return self._row_to_rule(row) if row else None

    async def list_rules(self) -> tuple[Rule, ...]:
        """Get the committed rule set in evaluation order."""
        async with self._pool.acquire() as conn:
            return await self._fetch_rules(conn)

    async def create(self, draft: RuleDraft, *, actor_id: str) -> Rule:
        """Validate and store a new rule."""
        async with self._pool.transaction() as conn:
            existing = await self._lock_and_fetch(conn)
            sequence = await conn.fetchval("SELECT nextval('lead_rule_sequence')")
            rule = build_rule(draft, sequence)
            await self._validator.validate(rule, existing)
            await conn.execute(
                f"""
                INSERT INTO lead_rules ({_RULE_COLUMNS})
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                """,
                *self._rule_values(rule),
            )
            await insert_audit_entry(conn, rule_created_entry(rule, actor_id))
        RULE_MUTATIONS.labels(action="created").inc()
        logger.info(
            "rule_created",
            rule_id=str(rule.id),
            priority=rule.priority,
            target_office_id=rule.target_office_id,
            actor_id=actor_id,
        )
        return rule

    async def update(self, rule_id: UUID, patch: RulePatch, *, actor_id: str) -> Rule:
        """Validate and apply a partial update."""
        async with self._pool.transaction() as conn:
            existing = await self._lock_and_fetch(conn)
            before = self._find(existing, rule_id)
            after = apply_patch(before, patch)
            await self._validator.validate(after, existing)
            changes = diff_rules(before, after)
            if not changes:
                return before
            await self._write_rule(conn, after)
            await insert_audit_entry(
                conn, rule_updated_entry(before, after, actor_id, changes)
            )
        RULE_MUTATIONS.labels(action="updated").inc()
        logger.info(
            "rule_updated",
            rule_id=str(rule_id),
            changed_fields=sorted(changes),
            actor_id=actor_id,
        )
        return after

    async def delete(self, rule_id: UUID, *, actor_id: str) -> Rule:
        """Remove a rule; its history stays in the audit log."""
        async with self._pool.transaction() as conn:
            existing = await self._lock_and_fetch(conn)
            rule = self._find(existing, rule_id)
            await conn.execute("DELETE FROM lead_rules WHERE id = $1", rule_id)
            await insert_audit_entry(conn, rule_deleted_entry(rule, actor_id))
        RULE_MUTATIONS.labels(action="deleted").inc()
        logger.info("rule_deleted", rule_id=str(rule_id), actor_id=actor_id)
        return rule

    async def reorder(self, rule_ids: Sequence[UUID], *, actor_id: str) -> tuple[Rule, ...]:
        """List the given rules in the given order among themselves."""
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                existing = await self._lock_and_fetch(conn)
                changed = resequence(existing, rule_ids)
                for before, after in changed:
                    await self._write_rule(conn, after)
                    await insert_audit_entry(
                        conn,
                        rule_updated_entry(before, after, actor_id, diff_rules(before, after)),
                    )
            rules = await self._fetch_rules(conn)
        if changed:
            RULE_MUTATIONS.labels(action="reordered").inc()
        logger.info("rules_reordered", moved=len(changed), actor_id=actor_id)
        return rules

    # Helper methods
    async def _lock_and_fetch(self, conn: asyncpg.Connection) -> tuple[Rule, ...]:
        await conn.execute("SELECT pg_advisory_xact_lock($1)", RULES_LOCK_KEY)
        return await self._fetch_rules(conn)

    async def _fetch_rules(self, conn: asyncpg.Connection) -> tuple[Rule, ...]:
        rows = await conn.fetch(
            f"SELECT {_RULE_COLUMNS} FROM lead_rules ORDER BY priority ASC, sequence ASC"
        )
        return tuple(self._row_to_rule(row) for row in rows)

    async def _write_rule(self, conn: asyncpg.Connection, rule: Rule) -> None:
        await conn.execute(
            """
            UPDATE lead_rules SET
                priority = $2, sequence = $3, criteria_office_id = $4,
                criteria_study_destination = $5, criteria_lead_source = $6,
                target_office_id = $7, target_consultant_id = $8,
                created_at = $9, updated_at = $10
            WHERE id = $1
            """,
            *self._rule_values(rule),
        )

    @staticmethod
    def _find(rules: Sequence[Rule], rule_id: UUID) -> Rule:
        for rule in rules:
            if rule.id == rule_id:
                return rule
        raise RuleNotFoundError(rule_id)

    @staticmethod
    def _rule_values(rule: Rule) -> tuple[Any, ...]:
        return (
            rule.id,
            rule.priority,
            rule.sequence,
            rule.criteria.office_id,
            rule.criteria.study_destination,
            rule.criteria.lead_source,
            rule.target_office_id,
            rule.target_consultant_id,
            rule.created_at,
            rule.updated_at,
        )

    @staticmethod
    def _row_to_rule(row: Any) -> Rule:
        """Convert database row to Rule model."""
        return Rule(
            id=row["id"],
            priority=row["priority"],
            sequence=row["sequence"],
            criteria=RuleCriteria(
                office_id=row["criteria_office_id"],
                study_destination=row["criteria_study_destination"],
                lead_source=row["criteria_lead_source"],
            ),
            target_office_id=row["target_office_id"],
            target_consultant_id=row["target_consultant_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class PostgresLeadStore(LeadStore):
    """PostgreSQL implementation of LeadStore.

    ``commit_assignment`` updates the lead row with a version guard and
    inserts the audit row in the same transaction.
    """

    def __init__(self, pool: PostgresPool) -> None:
        """Initialize with connection pool.

        Args:
            pool: PostgreSQL connection pool
        """
        self._pool = pool

    async def get_lead(self, lead_id: str) -> Lead | None:
        """Get a lead by ID."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_LEAD_COLUMNS} FROM leads WHERE id = $1",
                lead_id,
            )
        return self._row_to_lead(row) if row else None

    async def save_lead(self, lead: Lead) -> Lead:
        """Create or update a lead from intake."""
        now = utc_now()
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO leads (
                    id, source, study_destination, status, name, email, phone,
                    version, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, 1, $8, $8)
                ON CONFLICT (id) DO UPDATE SET
                    source = EXCLUDED.source,
                    study_destination = EXCLUDED.study_destination,
                    status = EXCLUDED.status,
                    name = EXCLUDED.name,
                    email = EXCLUDED.email,
                    phone = EXCLUDED.phone,
                    version = leads.version + 1,
                    updated_at = EXCLUDED.updated_at
                RETURNING {_LEAD_COLUMNS}
                """,
                lead.id,
                lead.source,
                lead.destination,
                lead.status.value,
                lead.name,
                lead.email,
                lead.phone,
                now,
            )
        logger.debug("lead_saved", lead_id=lead.id, version=row["version"])
        return self._row_to_lead(row)

    async def list_leads(
        self,
        *,
        unassigned_only: bool = False,
        office_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Lead]:
        """List leads ordered by creation time."""
        query = f"SELECT {_LEAD_COLUMNS} FROM leads WHERE TRUE"
        params: list[Any] = []

        if unassigned_only:
            query += " AND office_id IS NULL AND assigned_consultant_id IS NULL"

        if office_id is not None:
            params.append(office_id)
            query += f" AND office_id = ${len(params)}"

        params.append(limit)
        query += f" ORDER BY created_at ASC, id ASC LIMIT ${len(params)}"
        params.append(offset)
        query += f" OFFSET ${len(params)}"

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [self._row_to_lead(row) for row in rows]

    async def count_active_by_consultant(
        self,
        consultant_ids: Collection[str],
    ) -> dict[str, int]:
        """Count active leads per consultant."""
        wanted = list(consultant_ids)
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT assigned_consultant_id, COUNT(*) AS active
                FROM leads
                WHERE assigned_consultant_id = ANY($1::text[])
                  AND status NOT IN ('converted', 'lost')
                GROUP BY assigned_consultant_id
                """,
                wanted,
            )
        counts = {row["assigned_consultant_id"]: row["active"] for row in rows}
        return {consultant_id: counts.get(consultant_id, 0) for consultant_id in wanted}

    async def commit_assignment(
        self,
        lead_id: str,
        *,
        expected_version: int,
        office_id: str | None,
        consultant_id: str | None,
        entry: AuditEntry,
    ) -> tuple[Lead, AuditEntry]:
        """Write a lead's assignment and its audit entry together."""
        async with self._pool.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE leads SET
                    office_id = $2,
                    assigned_consultant_id = $3,
                    version = version + 1,
                    updated_at = $4
                WHERE id = $1 AND version = $5
                RETURNING {_LEAD_COLUMNS}
                """,
                lead_id,
                office_id,
                consultant_id,
                entry.timestamp,
                expected_version,
            )
            if row is None:
                actual = await conn.fetchval(
                    "SELECT version FROM leads WHERE id = $1", lead_id
                )
                if actual is None:
                    raise LeadNotFoundError(lead_id)
                raise ConcurrentModificationError(lead_id, expected_version, actual)
            stored_entry = await insert_audit_entry(conn, entry)
        return self._row_to_lead(row), stored_entry

    @staticmethod
    def _row_to_lead(row: Any) -> Lead:
        """Convert database row to Lead model."""
        return Lead(
            id=row["id"],
            source=row["source"],
            study_preferences=StudyPreferences(destination=row["study_destination"]),
            status=row["status"],
            office_id=row["office_id"],
            assigned_consultant_id=row["assigned_consultant_id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            version=row["version"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
