"""Audit history response models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from leadrouter.audit.models import AuditAction, AuditEntry


class AuditEntryResponse(BaseModel):
    """One entry of a lead's or a rule's history."""

    id: UUID
    sequence: int | None
    lead_id: str | None
    rule_id: UUID | None
    actor_id: str
    action: AuditAction
    description: str
    details: dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryResponse":
        return cls(
            id=entry.id,
            sequence=entry.sequence,
            lead_id=entry.lead_id,
            rule_id=entry.rule_id,
            actor_id=entry.actor_id,
            action=entry.action,
            description=entry.description,
            details=entry.details,
            timestamp=entry.timestamp,
        )


class HistoryResponse(BaseModel):
    """Chronological history of a lead or a rule."""

    entries: list[AuditEntryResponse]
