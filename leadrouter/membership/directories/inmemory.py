"""In-memory implementation of OfficeDirectory."""

from leadrouter.membership.directory import OfficeDirectory
from leadrouter.membership.models import Office


class InMemoryOfficeDirectory(OfficeDirectory):
    """In-memory implementation of OfficeDirectory for testing and development.

    Uses simple dict storage. The write methods stand in for the
    office-management surface that owns this data in production.
    """

    def __init__(self, offices: list[Office] | None = None) -> None:
        """Initialize storage, optionally seeded with offices."""
        self._offices: dict[str, Office] = {}
        for office in offices or []:
            self._offices[office.id] = office

    async def get_office(self, office_id: str) -> Office | None:
        """Get an office by ID."""
        return self._offices.get(office_id)

    async def list_offices(self) -> list[Office]:
        """List all offices ordered by ID."""
        return sorted(self._offices.values(), key=lambda x: x.id)

    async def save_office(self, office: Office) -> Office:
        """Create or replace an office."""
        self._offices[office.id] = office
        return office

    async def delete_office(self, office_id: str) -> bool:
        """Remove an office. Returns False if it did not exist."""
        return self._offices.pop(office_id, None) is not None

    async def add_member(self, office_id: str, consultant_id: str) -> Office:
        """Add a consultant to an office."""
        office = self._require(office_id)
        updated = office.model_copy(
            update={"consultant_ids": office.consultant_ids | {consultant_id}}
        )
        self._offices[office_id] = updated
        return updated

    async def remove_member(self, office_id: str, consultant_id: str) -> Office:
        """Remove a consultant from an office."""
        office = self._require(office_id)
        updated = office.model_copy(
            update={"consultant_ids": office.consultant_ids - {consultant_id}}
        )
        self._offices[office_id] = updated
        return updated

    def _require(self, office_id: str) -> Office:
        office = self._offices.get(office_id)
        if office is None:
            raise KeyError(office_id)
        return office
