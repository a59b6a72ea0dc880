"""In-memory implementations of RuleStore and LeadStore."""

import asyncio
import itertools
from collections import Counter
from collections.abc import Collection, Sequence
from uuid import UUID

from leadrouter.audit.models import AuditEntry
from leadrouter.audit.stores.inmemory import InMemoryAuditLog
from leadrouter.observability.logging import get_logger
from leadrouter.observability.metrics import RULE_MUTATIONS
from leadrouter.routing.errors import (
    ConcurrentModificationError,
    LeadNotFoundError,
    RuleNotFoundError,
)
from leadrouter.routing.models import Lead, LeadStatus, Rule, RuleDraft, RulePatch, utc_now
from leadrouter.routing.stores.lead_store import LeadStore
from leadrouter.routing.stores.rule_changes import (
    apply_patch,
    build_rule,
    diff_rules,
    resequence,
    rule_created_entry,
    rule_deleted_entry,
    rule_updated_entry,
    sorted_rules,
)
from leadrouter.routing.stores.rule_store import RuleStore
from leadrouter.routing.validation import RuleValidator

logger = get_logger(__name__)

_INACTIVE_STATUSES = (LeadStatus.CONVERTED, LeadStatus.LOST)


class InMemoryRuleStore(RuleStore):
    """In-memory implementation of RuleStore for testing and development.

    Mutations run under a single asyncio.Lock. The committed rule set is
    an immutable tuple replaced wholesale on every commit, so readers
    never lock and never see a partial edit. The audit entry is recorded
    in the same synchronous step that swaps the tuple.
    """

    def __init__(self, validator: RuleValidator, audit_log: InMemoryAuditLog) -> None:
        """Initialize empty storage."""
        self._validator = validator
        self._audit_log = audit_log
        self._rules: dict[UUID, Rule] = {}
        self._snapshot: tuple[Rule, ...] = ()
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    async def get_rule(self, rule_id: UUID) -> Rule | None:
        """Get a rule by ID."""
        return self._rules.get(rule_id)

    async def list_rules(self) -> tuple[Rule, ...]:
        """Get the committed rule set in evaluation order."""
        return self._snapshot

    async def create(self, draft: RuleDraft, *, actor_id: str) -> Rule:
        """Validate and store a new rule."""
        async with self._lock:
            rule = build_rule(draft, next(self._sequence))
            await self._validator.validate(rule, self._snapshot)
            self._commit([rule], [rule_created_entry(rule, actor_id)])
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
        async with self._lock:
            before = self._require(rule_id)
            after = apply_patch(before, patch)
            await self._validator.validate(after, self._snapshot)
            changes = diff_rules(before, after)
            if not changes:
                return before
            self._commit([after], [rule_updated_entry(before, after, actor_id, changes)])
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
        async with self._lock:
            rule = self._require(rule_id)
            del self._rules[rule_id]
            self._commit([], [rule_deleted_entry(rule, actor_id)])
        RULE_MUTATIONS.labels(action="deleted").inc()
        logger.info("rule_deleted", rule_id=str(rule_id), actor_id=actor_id)
        return rule

    async def reorder(self, rule_ids: Sequence[UUID], *, actor_id: str) -> tuple[Rule, ...]:
        """List the given rules in the given order among themselves."""
        async with self._lock:
            changed = resequence(self._snapshot, rule_ids)
            entries = [
                rule_updated_entry(before, after, actor_id, diff_rules(before, after))
                for before, after in changed
            ]
            self._commit([after for _, after in changed], entries)
        if changed:
            RULE_MUTATIONS.labels(action="reordered").inc()
        logger.info("rules_reordered", moved=len(changed), actor_id=actor_id)
        return self._snapshot

    def _require(self, rule_id: UUID) -> Rule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def _commit(self, rules: list[Rule], entries: list[AuditEntry]) -> None:
        for rule in rules:
            self._rules[rule.id] = rule
        self._snapshot = sorted_rules(list(self._rules.values()))
        for entry in entries:
            self._audit_log.record(entry)


class InMemoryLeadStore(LeadStore):
    """In-memory implementation of LeadStore for testing and development.

    Uses simple dict storage with linear scan for queries.
    ``commit_assignment`` has no await point, so the lead update and the
    audit append cannot interleave with another task.
    """

    def __init__(self, audit_log: InMemoryAuditLog) -> None:
        """Initialize empty storage."""
        self._audit_log = audit_log
        self._leads: dict[str, Lead] = {}

    async def get_lead(self, lead_id: str) -> Lead | None:
        """Get a lead by ID."""
        return self._leads.get(lead_id)

    async def save_lead(self, lead: Lead) -> Lead:
        """Create or update a lead from intake."""
        current = self._leads.get(lead.id)
        now = utc_now()
        if current is None:
            stored = lead.model_copy(
                update={
                    "office_id": None,
                    "assigned_consultant_id": None,
                    "version": 1,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        else:
            stored = lead.model_copy(
                update={
                    "office_id": current.office_id,
                    "assigned_consultant_id": current.assigned_consultant_id,
                    "version": current.version + 1,
                    "created_at": current.created_at,
                    "updated_at": now,
                }
            )
        self._leads[lead.id] = stored
        return stored

    async def list_leads(
        self,
        *,
        unassigned_only: bool = False,
        office_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Lead]:
        """List leads ordered by creation time."""
        results = []
        for lead in self._leads.values():
            if unassigned_only and lead.is_assigned:
                continue
            if office_id is not None and lead.office_id != office_id:
                continue
            results.append(lead)
        results.sort(key=lambda x: (x.created_at, x.id))
        return results[offset:offset + limit]

    async def count_active_by_consultant(
        self,
        consultant_ids: Collection[str],
    ) -> dict[str, int]:
        """Count active leads per consultant."""
        wanted = set(consultant_ids)
        counts = Counter(
            lead.assigned_consultant_id
            for lead in self._leads.values()
            if lead.assigned_consultant_id in wanted and lead.status not in _INACTIVE_STATUSES
        )
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
        current = self._leads.get(lead_id)
        if current is None:
            raise LeadNotFoundError(lead_id)
        if current.version != expected_version:
            raise ConcurrentModificationError(lead_id, expected_version, current.version)
        updated = current.model_copy(
            update={
                "office_id": office_id,
                "assigned_consultant_id": consultant_id,
                "version": current.version + 1,
                "updated_at": entry.timestamp,
            }
        )
        stored_entry = self._audit_log.record(entry)
        self._leads[lead_id] = updated
        return updated, stored_entry
