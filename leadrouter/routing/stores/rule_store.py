"""RuleStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from uuid import UUID

from leadrouter.routing.models import Rule, RuleDraft, RulePatch


class RuleStore(ABC):
    """Abstract interface for distribution rule storage.

    Mutations are serialised and validated before anything is written.
    Each mutation appends its audit entry in the same commit. Readers get
    the last committed rule set, ordered by (priority, sequence).
    """

    @abstractmethod
    async def get_rule(self, rule_id: UUID) -> Rule | None:
        """Get a rule by ID."""
        pass

    @abstractmethod
    async def list_rules(self) -> tuple[Rule, ...]:
        """Get the committed rule set in evaluation order."""
        pass

    @abstractmethod
    async def create(self, draft: RuleDraft, *, actor_id: str) -> Rule:
        """Validate and store a new rule at the end of its priority group."""
        pass

    @abstractmethod
    async def update(self, rule_id: UUID, patch: RulePatch, *, actor_id: str) -> Rule:
        """Validate and apply a partial update."""
        pass

    @abstractmethod
    async def delete(self, rule_id: UUID, *, actor_id: str) -> Rule:
        """Remove a rule from the active set, returning its last definition."""
        pass

    @abstractmethod
    async def reorder(self, rule_ids: Sequence[UUID], *, actor_id: str) -> tuple[Rule, ...]:
        """List the given rules in the given order among themselves.

        Returns the full rule set after reordering.
        """
        pass
