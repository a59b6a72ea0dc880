"""AuditLog abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from leadrouter.audit.models import AuditEntry


class AuditLog(ABC):
    """Abstract interface for the append-only audit log.

    There is deliberately no update or delete operation. Query results
    are ordered by timestamp, ties broken by insertion sequence.
    """

    @abstractmethod
    async def append(self, entry: AuditEntry) -> AuditEntry:
        """Append an entry and return it with its sequence number set."""
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> AuditEntry | None:
        """Get an entry by ID."""
        pass

    @abstractmethod
    async def for_lead(self, lead_id: str) -> list[AuditEntry]:
        """List a lead's entries in chronological order."""
        pass

    @abstractmethod
    async def for_rule(self, rule_id: UUID) -> list[AuditEntry]:
        """List a rule's entries in chronological order."""
        pass

    @abstractmethod
    async def find_by_idempotency_key(
        self,
        lead_id: str,
        idempotency_key: str,
    ) -> AuditEntry | None:
        """Find the entry a dispatch attempt with this key wrote, if any."""
        pass
