"""OfficeDirectory abstract interface."""

from abc import ABC, abstractmethod

from leadrouter.membership.models import Office


class OfficeDirectory(ABC):
    """Read-only access to offices and their members.

    Implementations must reflect the directory's current state on every
    call; membership changes independently of distribution rules.
    """

    @abstractmethod
    async def get_office(self, office_id: str) -> Office | None:
        """Get an office by ID."""
        pass

    @abstractmethod
    async def list_offices(self) -> list[Office]:
        """List all offices."""
        pass
