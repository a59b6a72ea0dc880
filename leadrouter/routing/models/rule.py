"""Distribution rule models."""

from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leadrouter.routing.models.base import TimestampedModel, blank_to_none
from leadrouter.routing.models.enums import PriorityBand

CRITERIA_FIELDS: tuple[str, ...] = ("office_id", "study_destination", "lead_source")


class RuleCriteria(BaseModel):
    """Conditions a lead must satisfy for a rule to match.

    Unset fields are wildcards. Empty strings are treated as unset.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    office_id: str | None = Field(default=None, description="Lead's current office")
    study_destination: str | None = Field(default=None, description="Lead's study destination")
    lead_source: str | None = Field(default=None, description="Lead's source channel")

    @field_validator("office_id", "study_destination", "lead_source", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return blank_to_none(v)

    def constraints(self) -> dict[str, str]:
        """The criteria fields that are set."""
        return {name: value for name in CRITERIA_FIELDS if (value := getattr(self, name))}

    @property
    def is_catch_all(self) -> bool:
        return not self.constraints()


class RuleDraft(BaseModel):
    """Fields supplied when creating a rule."""

    model_config = ConfigDict(frozen=True)

    priority: int = Field(..., strict=True, description="Lower values are evaluated first")
    criteria: RuleCriteria = Field(default_factory=RuleCriteria, description="Match conditions")
    target_office_id: str = Field(..., min_length=1, description="Office matching leads go to")
    target_consultant_id: str | None = Field(
        default=None,
        description="Specific consultant; unset means any consultant of the office",
    )

    @field_validator("target_consultant_id", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return blank_to_none(v)


class RulePatch(BaseModel):
    """Partial update of a rule.

    Only fields explicitly provided are applied; passing
    ``target_consultant_id=None`` clears the consultant.
    """

    model_config = ConfigDict(frozen=True)

    priority: int | None = Field(default=None, strict=True, description="New priority")
    criteria: RuleCriteria | None = Field(default=None, description="Replacement criteria")
    target_office_id: str | None = Field(default=None, min_length=1, description="New target office")
    target_consultant_id: str | None = Field(default=None, description="New target consultant")

    @field_validator("target_consultant_id", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return blank_to_none(v)

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set on this patch."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Rule(TimestampedModel):
    """Criteria to target mapping used to route leads automatically.

    Rules are evaluated in ascending ``priority``; rules sharing a
    priority are evaluated in ascending ``sequence``, which records
    creation order until the operator reorders them.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    priority: int = Field(..., strict=True, description="Lower values are evaluated first")
    sequence: int = Field(default=0, ge=0, description="Tie-break among equal priorities")
    criteria: RuleCriteria = Field(default_factory=RuleCriteria, description="Match conditions")
    target_office_id: str = Field(..., min_length=1, description="Office matching leads go to")
    target_consultant_id: str | None = Field(
        default=None,
        description="Specific consultant; unset means any consultant of the office",
    )

    @field_validator("target_consultant_id", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return blank_to_none(v)

    @property
    def priority_band(self) -> PriorityBand:
        return PriorityBand.for_priority(self.priority)

    @property
    def order_key(self) -> tuple[int, int]:
        return (self.priority, self.sequence)

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe copy of the full definition, stored in audit entries."""
        return self.model_dump(mode="json")
