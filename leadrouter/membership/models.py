"""Office model as supplied by the external staff directory."""

from pydantic import BaseModel, ConfigDict, Field


class Office(BaseModel):
    """An office and the consultants allowed to serve its leads.

    Owned by the staff directory; the routing core only reads it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Office identifier")
    name: str = Field(default="", description="Display name")
    city: str | None = Field(default=None, description="City the office is located in")
    max_consultants: int | None = Field(
        default=None, ge=0, description="Capacity limit for consultants"
    )
    max_appointments: int | None = Field(
        default=None, ge=0, description="Capacity limit for appointments"
    )
    consultant_ids: frozenset[str] = Field(
        default_factory=frozenset,
        description="Consultants who are members of this office",
    )
