"""Base models for routing domain entities."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def blank_to_none(value: Any) -> Any:
    """Normalise empty or whitespace-only strings to None."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TimestampedModel(BaseModel):
    """Base for routing entities.

    Entities are frozen; a change produces a new instance, so a reader
    holding a reference never sees a half-applied edit.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )

    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last modification timestamp")
