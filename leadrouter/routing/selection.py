"""Consultant selection strategies.

When a rule targets a whole office, a strategy picks one consultant
among the office's current members. A strategy may decline to pick, in
which case the lead is assigned to the office only and a human chooses
the consultant later.
"""

from abc import ABC, abstractmethod
from collections.abc import Collection
from typing import Any

from leadrouter.routing.models import Lead
from leadrouter.routing.stores.lead_store import LeadStore


class ConsultantSelectionStrategy(ABC):
    """Interface for choosing a consultant among eligible office members.

    Contract guarantees:
        - Returns a member of ``candidates`` or None
        - Returns None when ``candidates`` is empty
        - Never writes to any store
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name for logging."""
        pass

    @abstractmethod
    async def select(
        self,
        lead: Lead,
        office_id: str,
        candidates: Collection[str],
    ) -> str | None:
        """Pick a consultant for the lead, or None to leave it to a human."""
        pass


class RoundRobinSelectionStrategy(ConsultantSelectionStrategy):
    """Rotate through an office's members in id order.

    Keeps one cursor per office. The cursor remembers the last consultant
    picked, so members joining or leaving do not reset the rotation.
    """

    def __init__(self) -> None:
        self._last: dict[str, str] = {}

    @property
    def name(self) -> str:
        return "round_robin"

    async def select(
        self,
        lead: Lead,  # noqa: ARG002
        office_id: str,
        candidates: Collection[str],
    ) -> str | None:
        ordered = sorted(candidates)
        if not ordered:
            return None
        last = self._last.get(office_id)
        choice = next((c for c in ordered if last is None or c > last), ordered[0])
        self._last[office_id] = choice
        return choice


class LeastLoadedSelectionStrategy(ConsultantSelectionStrategy):
    """Pick the member with the fewest active leads.

    Active means assigned and not converted or lost. Ties go to the
    lowest consultant id.
    """

    def __init__(self, lead_store: LeadStore) -> None:
        self._lead_store = lead_store

    @property
    def name(self) -> str:
        return "least_loaded"

    async def select(
        self,
        lead: Lead,  # noqa: ARG002
        office_id: str,  # noqa: ARG002
        candidates: Collection[str],
    ) -> str | None:
        if not candidates:
            return None
        loads = await self._lead_store.count_active_by_consultant(candidates)
        return min(candidates, key=lambda c: (loads.get(c, 0), c))


class ManualPickSelectionStrategy(ConsultantSelectionStrategy):
    """Never pick; the office is assigned and an operator chooses the consultant."""

    @property
    def name(self) -> str:
        return "manual_pick"

    async def select(
        self,
        lead: Lead,  # noqa: ARG002
        office_id: str,  # noqa: ARG002
        candidates: Collection[str],  # noqa: ARG002
    ) -> str | None:
        return None


def create_selection_strategy(
    strategy: str,
    **kwargs: Any,
) -> ConsultantSelectionStrategy:
    """Factory function to create selection strategies.

    Args:
        strategy: Strategy name (round_robin, least_loaded, manual_pick)
        **kwargs: Strategy-specific parameters (least_loaded needs lead_store)

    Returns:
        Configured ConsultantSelectionStrategy instance

    Raises:
        ValueError: If strategy name is not recognized
    """
    strategies: dict[str, type[ConsultantSelectionStrategy]] = {
        "round_robin": RoundRobinSelectionStrategy,
        "least_loaded": LeastLoadedSelectionStrategy,
        "manual_pick": ManualPickSelectionStrategy,
    }

    if strategy not in strategies:
        valid = ", ".join(strategies.keys())
        raise ValueError(f"Unknown strategy: {strategy}. Valid options: {valid}")

    return strategies[strategy](**kwargs)
