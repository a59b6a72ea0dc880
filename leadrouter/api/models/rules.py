"""Request and response models for distribution rule endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from leadrouter.routing.models import PriorityBand, Rule, RuleCriteria, RuleDraft, RulePatch


class RuleCreate(BaseModel):
    """Request model for creating a rule."""

    priority: int = Field(..., strict=True, description="Lower values are evaluated first")
    criteria: RuleCriteria = Field(default_factory=RuleCriteria)
    target_office_id: str = Field(..., min_length=1)
    target_consultant_id: str | None = Field(default=None)

    def to_draft(self) -> RuleDraft:
        return RuleDraft.model_validate(self.model_dump())


class RuleUpdate(BaseModel):
    """Request model for updating a rule.

    Omitted fields are left unchanged; ``target_consultant_id: null``
    clears the consultant.
    """

    priority: int | None = Field(default=None, strict=True)
    criteria: RuleCriteria | None = Field(default=None)
    target_office_id: str | None = Field(default=None, min_length=1)
    target_consultant_id: str | None = Field(default=None)

    def to_patch(self) -> RulePatch:
        return RulePatch.model_validate(self.model_dump(exclude_unset=True))


class RuleReorderRequest(BaseModel):
    """Request model for reordering rules that share a priority."""

    rule_ids: list[UUID] = Field(..., min_length=1)


class RuleResponse(BaseModel):
    """Response model for rule operations."""

    id: UUID
    priority: int
    priority_band: PriorityBand
    sequence: int
    criteria: RuleCriteria
    target_office_id: str
    target_consultant_id: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_rule(cls, rule: Rule) -> "RuleResponse":
        return cls(
            id=rule.id,
            priority=rule.priority,
            priority_band=rule.priority_band,
            sequence=rule.sequence,
            criteria=rule.criteria,
            target_office_id=rule.target_office_id,
            target_consultant_id=rule.target_consultant_id,
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )


class RuleListResponse(BaseModel):
    """The full rule set in evaluation order."""

    rules: list[RuleResponse]
