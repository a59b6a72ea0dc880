"""Lead models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leadrouter.routing.models.base import TimestampedModel, blank_to_none
from leadrouter.routing.models.enums import LeadSource, LeadStatus


class StudyPreferences(BaseModel):
    """What the prospective student wants to study, and where."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    destination: str | None = Field(default=None, description="Preferred study destination")

    @field_validator("destination", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return blank_to_none(v)


class Lead(TimestampedModel):
    """A prospective student inquiry.

    The intake surface owns every field except ``office_id`` and
    ``assigned_consultant_id``, which only the dispatcher writes.
    ``version`` increases on every write and backs optimistic locking.
    """

    id: str = Field(..., min_length=1, description="Lead identifier")
    source: str | None = Field(default=None, description="Channel the lead came from")
    study_preferences: StudyPreferences = Field(
        default_factory=StudyPreferences, description="Study preferences"
    )
    status: LeadStatus = Field(default=LeadStatus.NEW, description="Lifecycle status")
    office_id: str | None = Field(default=None, description="Assigned office")
    assigned_consultant_id: str | None = Field(default=None, description="Assigned consultant")
    name: str | None = Field(default=None, description="Contact name")
    email: str | None = Field(default=None, description="Contact e-mail")
    phone: str | None = Field(default=None, description="Contact phone")
    version: int = Field(default=0, ge=0, description="Optimistic lock counter")

    @field_validator("source", mode="before")
    @classmethod
    def normalise_source(cls, v: Any) -> Any:
        if isinstance(v, LeadSource):
            return v.value
        return blank_to_none(v)

    @field_validator("office_id", "assigned_consultant_id", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return blank_to_none(v)

    @property
    def destination(self) -> str | None:
        return self.study_preferences.destination

    @property
    def is_assigned(self) -> bool:
        return self.office_id is not None or self.assigned_consultant_id is not None

    def criteria_values(self) -> dict[str, str | None]:
        """Lead fields keyed by the rule criteria they are compared with."""
        return {
            "office_id": self.office_id,
            "study_destination": self.destination,
            "lead_source": self.source,
        }
