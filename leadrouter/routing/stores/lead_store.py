"""LeadStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Collection

from leadrouter.audit.models import AuditEntry
from leadrouter.routing.models import Lead


class LeadStore(ABC):
    """Abstract interface for lead storage.

    The intake surface writes leads through ``save_lead``; only
    ``commit_assignment`` changes the assignment fields.
    """

    @abstractmethod
    async def get_lead(self, lead_id: str) -> Lead | None:
        """Get a lead by ID."""
        pass

    @abstractmethod
    async def save_lead(self, lead: Lead) -> Lead:
        """Create or update a lead from intake.

        The stored assignment fields and creation time are kept; the
        version is incremented.
        """
        pass

    @abstractmethod
    async def list_leads(
        self,
        *,
        unassigned_only: bool = False,
        office_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Lead]:
        """List leads ordered by creation time."""
        pass

    @abstractmethod
    async def count_active_by_consultant(
        self,
        consultant_ids: Collection[str],
    ) -> dict[str, int]:
        """Count leads assigned to each consultant that are not converted or lost."""
        pass

    @abstractmethod
    async def commit_assignment(
        self,
        lead_id: str,
        *,
        expected_version: int,
        office_id: str | None,
        consultant_id: str | None,
        entry: AuditEntry,
    ) -> tuple[Lead, AuditEntry]:
        """Write a lead's assignment and its audit entry together.

        Raises:
            LeadNotFoundError: If the lead does not exist
            ConcurrentModificationError: If the lead is not at ``expected_version``
        """
        pass
