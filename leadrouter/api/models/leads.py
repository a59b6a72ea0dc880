"""Request and response models for lead and dispatch endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from leadrouter.routing.models import (
    AutomaticMode,
    BulkDispatchItem,
    DispatchMode,
    Lead,
    LeadStatus,
    StudyPreferences,
)


class LeadUpsert(BaseModel):
    """Lead fields written by the intake surface.

    Assignment fields are not accepted here; only dispatch changes them.
    """

    source: str | None = Field(default=None)
    study_preferences: StudyPreferences = Field(default_factory=StudyPreferences)
    status: LeadStatus = Field(default=LeadStatus.NEW)
    name: str | None = Field(default=None)
    email: str | None = Field(default=None)
    phone: str | None = Field(default=None)

    def to_lead(self, lead_id: str) -> Lead:
        return Lead(id=lead_id, **self.model_dump())


class LeadResponse(BaseModel):
    """Response model for lead operations."""

    id: str
    source: str | None
    study_preferences: StudyPreferences
    status: LeadStatus
    office_id: str | None
    assigned_consultant_id: str | None
    name: str | None
    email: str | None
    phone: str | None
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_lead(cls, lead: Lead) -> "LeadResponse":
        return cls.model_validate(lead.model_dump())


class DispatchRequest(BaseModel):
    """Request model for dispatching one lead.

    Example:
        {"mode": {"kind": "manual", "office_id": "o-2", "consultant_id": "c-7"}}
    """

    mode: DispatchMode = Field(default_factory=AutomaticMode)


class BulkDispatchRequest(BaseModel):
    """Request model for dispatching several leads with the same mode."""

    lead_ids: list[str] = Field(..., min_length=1)
    mode: DispatchMode = Field(default_factory=AutomaticMode)


class BulkDispatchResponse(BaseModel):
    """Per-lead results of a bulk dispatch, in request order."""

    items: list[BulkDispatchItem]
    assigned: int = Field(..., ge=0, description="Leads whose assignment was written")
    failed: int = Field(..., ge=0, description="Leads rejected with an error")

    @classmethod
    def from_items(cls, items: list[BulkDispatchItem]) -> "BulkDispatchResponse":
        return cls(
            items=items,
            assigned=sum(
                1 for item in items if item.result is not None and item.result.committed
            ),
            failed=sum(1 for item in items if item.error is not None),
        )


class LeadListResponse(BaseModel):
    """A page of leads."""

    items: list[LeadResponse]
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    has_more: bool = False
