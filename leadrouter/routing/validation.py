"""Write-time validation of distribution rules."""

from collections.abc import Iterable

from leadrouter.membership import MembershipIndex
from leadrouter.routing.errors import RuleValidationError
from leadrouter.routing.models import Rule


class RuleValidator:
    """Checks a candidate rule against configuration and the office directory.

    Raises RuleValidationError naming the first failing field. Priority
    bounds come from configuration rather than being fixed.
    """

    def __init__(
        self,
        membership: MembershipIndex,
        *,
        min_priority: int = 1,
        max_priority: int = 100,
        unique_priorities: bool = False,
    ) -> None:
        self._membership = membership
        self.min_priority = min_priority
        self.max_priority = max_priority
        self.unique_priorities = unique_priorities

    async def validate(self, rule: Rule, existing: Iterable[Rule] = ()) -> None:
        """Validate ``rule`` as it would be stored alongside ``existing``.

        ``existing`` may contain the rule itself (on update); it is skipped
        for the uniqueness check.
        """
        self.check_priority(rule.priority)
        if self.unique_priorities:
            for other in existing:
                if other.id != rule.id and other.priority == rule.priority:
                    raise RuleValidationError(
                        "priority",
                        f"Priority {rule.priority} is already used by rule {other.id}",
                    )

        if not await self._membership.office_exists(rule.target_office_id):
            raise RuleValidationError(
                "target_office_id",
                f"Office {rule.target_office_id} does not exist",
            )

        consultant_id = rule.target_consultant_id
        if consultant_id is not None and not await self._membership.is_member(
            consultant_id, rule.target_office_id
        ):
            raise RuleValidationError(
                "target_consultant_id",
                f"Consultant {consultant_id} is not a member of office {rule.target_office_id}",
            )

        criteria_office = rule.criteria.office_id
        if criteria_office is not None and not await self._membership.office_exists(
            criteria_office
        ):
            raise RuleValidationError(
                "criteria.office_id",
                f"Office {criteria_office} does not exist",
            )

    def check_priority(self, priority: int) -> None:
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise RuleValidationError("priority", "Priority must be an integer")
        if not self.min_priority <= priority <= self.max_priority:
            raise RuleValidationError(
                "priority",
                f"Priority must be between {self.min_priority} and {self.max_priority}",
            )
