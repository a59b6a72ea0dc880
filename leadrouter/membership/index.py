"""Consultant to office membership lookups."""

from leadrouter.membership.directory import OfficeDirectory


class MembershipIndex:
    """Read-through projection of the office directory.

    Every call goes to the directory, so a consultant removed from an
    office is no longer a member on the very next check.
    """

    def __init__(self, directory: OfficeDirectory) -> None:
        self._directory = directory

    async def office_exists(self, office_id: str) -> bool:
        return await self._directory.get_office(office_id) is not None

    async def is_member(self, consultant_id: str, office_id: str) -> bool:
        office = await self._directory.get_office(office_id)
        return office is not None and consultant_id in office.consultant_ids

    async def members_of(self, office_id: str) -> frozenset[str]:
        """Consultants of an office; empty for an unknown office."""
        office = await self._directory.get_office(office_id)
        if office is None:
            return frozenset()
        return office.consultant_ids

    async def offices_of(self, consultant_id: str) -> frozenset[str]:
        offices = await self._directory.list_offices()
        return frozenset(
            office.id for office in offices if consultant_id in office.consultant_ids
        )
