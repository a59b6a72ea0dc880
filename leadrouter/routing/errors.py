"""Routing domain errors.

All errors are per-operation and recoverable by the caller. None of them
are retried automatically.
"""

from uuid import UUID


class RoutingError(Exception):
    """Base exception for routing errors."""

    code = "ROUTING_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RuleValidationError(RoutingError):
    """A rule draft or patch violates a constraint; nothing was written."""

    code = "RULE_VALIDATION_FAILED"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class AssignmentError(RoutingError):
    """A dispatch could not be committed; the lead is unchanged."""

    code = "ASSIGNMENT_FAILED"


class InvalidMembershipError(AssignmentError):
    """The consultant is not a member of the target office, or the office is gone."""

    code = "INVALID_MEMBERSHIP"

    def __init__(self, consultant_id: str | None, office_id: str, message: str | None = None) -> None:
        if message is None:
            message = f"Consultant {consultant_id} is not a member of office {office_id}"
        super().__init__(message)
        self.consultant_id = consultant_id
        self.office_id = office_id


class NotFoundError(RoutingError):
    """Base for unknown identifiers."""

    code = "NOT_FOUND"


class RuleNotFoundError(NotFoundError):
    code = "RULE_NOT_FOUND"

    def __init__(self, rule_id: UUID) -> None:
        super().__init__(f"Rule {rule_id} not found")
        self.rule_id = rule_id


class LeadNotFoundError(NotFoundError):
    code = "LEAD_NOT_FOUND"

    def __init__(self, lead_id: str) -> None:
        super().__init__(f"Lead {lead_id} not found")
        self.lead_id = lead_id


class ConcurrentModificationError(RoutingError):
    """The lead changed since the caller read it; retry with a fresh snapshot."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, lead_id: str, expected: int, actual: int | None) -> None:
        super().__init__(
            f"Lead {lead_id} is at version {actual}, expected {expected}"
        )
        self.lead_id = lead_id
        self.expected = expected
        self.actual = actual
