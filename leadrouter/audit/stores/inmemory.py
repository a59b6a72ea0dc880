"""In-memory implementation of AuditLog."""

import itertools
from uuid import UUID

from leadrouter.audit.models import AuditEntry
from leadrouter.audit.store import AuditLog
from leadrouter.observability.metrics import AUDIT_ENTRIES


class InMemoryAuditLog(AuditLog):
    """In-memory implementation of AuditLog for testing and development.

    Uses simple list storage with linear scan for queries.
    Not suitable for production use.

    ``record`` is synchronous so the in-memory stores can append an entry
    in the same step as their own state change, with no await point in
    between.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._entries: list[AuditEntry] = []
        self._by_id: dict[UUID, AuditEntry] = {}
        self._sequence = itertools.count(1)

    def record(self, entry: AuditEntry) -> AuditEntry:
        """Append an entry without yielding to the event loop."""
        if entry.id in self._by_id:
            raise ValueError(f"audit entry {entry.id} already recorded")
        stored = entry.model_copy(update={"sequence": next(self._sequence)})
        self._entries.append(stored)
        self._by_id[stored.id] = stored
        AUDIT_ENTRIES.labels(action=stored.action.value).inc()
        return stored

    async def append(self, entry: AuditEntry) -> AuditEntry:
        """Append an entry."""
        return self.record(entry)

    async def get_entry(self, entry_id: UUID) -> AuditEntry | None:
        """Get an entry by ID."""
        return self._by_id.get(entry_id)

    async def for_lead(self, lead_id: str) -> list[AuditEntry]:
        """List a lead's entries in chronological order."""
        results = [entry for entry in self._entries if entry.lead_id == lead_id]
        results.sort(key=lambda x: x.sort_key)
        return results

    async def for_rule(self, rule_id: UUID) -> list[AuditEntry]:
        """List a rule's entries in chronological order."""
        results = [entry for entry in self._entries if entry.rule_id == rule_id]
        results.sort(key=lambda x: x.sort_key)
        return results

    async def find_by_idempotency_key(
        self,
        lead_id: str,
        idempotency_key: str,
    ) -> AuditEntry | None:
        """Find the entry a dispatch attempt with this key wrote, if any."""
        for entry in self._entries:
            if entry.lead_id == lead_id and entry.idempotency_key == idempotency_key:
                return entry
        return None
