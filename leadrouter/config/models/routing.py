"""Rule validation and dispatch configuration."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

SelectionStrategyName = Literal["round_robin", "least_loaded", "manual_pick"]


class RulesConfig(BaseModel):
    """Constraints applied when distribution rules are written."""

    min_priority: int = Field(default=1, description="Lowest accepted priority value")
    max_priority: int = Field(default=100, description="Highest accepted priority value")
    unique_priorities: bool = Field(
        default=False,
        description="Reject rules whose priority is already used by another rule",
    )

    @model_validator(mode="after")
    def check_bounds(self) -> "RulesConfig":
        """Ensure the priority range is not empty."""
        if self.min_priority > self.max_priority:
            raise ValueError(
                f"min_priority ({self.min_priority}) cannot be greater than "
                f"max_priority ({self.max_priority})"
            )
        return self


class DispatchConfig(BaseModel):
    """Dispatcher behaviour."""

    selection_strategy: SelectionStrategyName = Field(
        default="round_robin",
        description="How a consultant is picked when a rule targets a whole office",
    )
    max_bulk_size: int = Field(
        default=200,
        gt=0,
        description="Maximum number of leads in one bulk dispatch request",
    )
