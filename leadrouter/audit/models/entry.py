"""AuditEntry model for the audit domain."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class AuditAction(str, Enum):
    """Kinds of events recorded in the audit log."""

    AUTO_ASSIGNED = "auto_assigned"
    REASSIGNED = "reassigned"
    RULE_CREATED = "rule_created"
    RULE_UPDATED = "rule_updated"
    RULE_DELETED = "rule_deleted"

    @property
    def is_assignment(self) -> bool:
        """Whether this action records a lead assignment."""
        return self in (AuditAction.AUTO_ASSIGNED, AuditAction.REASSIGNED)


class AuditEntry(BaseModel):
    """Immutable record of an assignment or rule change.

    Entries are self-contained: assignment entries carry the previous and
    new office/consultant, rule entries carry a full snapshot of the rule
    under ``details["rule"]``. Nothing here references a live row, so the
    history outlives deleted rules and purged leads.

    Exactly one of ``lead_id`` and ``rule_id`` is set.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    sequence: int | None = Field(
        default=None,
        description="Insertion sequence number, assigned by the audit log on append",
    )
    lead_id: str | None = Field(default=None, description="Lead the entry belongs to")
    rule_id: UUID | None = Field(default=None, description="Rule the entry belongs to")
    actor_id: str = Field(..., description="Operator or system actor that caused the event")
    action: AuditAction = Field(..., description="Event classification")
    description: str = Field(default="", description="Human-readable summary of the change")
    details: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    timestamp: datetime = Field(default_factory=utc_now, description="Event time")
    idempotency_key: str | None = Field(
        default=None,
        description="Caller-supplied key of the dispatch attempt that produced this entry",
    )

    @model_validator(mode="after")
    def check_subject(self) -> "AuditEntry":
        """Ensure the entry points at exactly one lead or one rule."""
        if (self.lead_id is None) == (self.rule_id is None):
            raise ValueError("audit entry needs exactly one of lead_id or rule_id")
        if self.action.is_assignment and self.lead_id is None:
            raise ValueError(f"{self.action.value} entries must reference a lead")
        if not self.action.is_assignment and self.rule_id is None:
            raise ValueError(f"{self.action.value} entries must reference a rule")
        return self

    @property
    def sort_key(self) -> tuple[datetime, int]:
        """Ordering key: timestamp, ties broken by insertion sequence."""
        return (self.timestamp, self.sequence or 0)
