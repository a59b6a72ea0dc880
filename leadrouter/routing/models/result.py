"""Dispatch modes, results and match previews."""

from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from leadrouter.routing.models.enums import DispatchOutcome
from leadrouter.routing.models.rule import Rule


class AutomaticMode(BaseModel):
    """Route the lead through the distribution rules.

    An assigned lead is left alone unless ``rerun`` is set.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["automatic"] = "automatic"
    rerun: bool = Field(default=False, description="Re-evaluate rules for an assigned lead")


class ManualMode(BaseModel):
    """Operator override naming the office and optionally the consultant."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["manual"] = "manual"
    office_id: str = Field(..., min_length=1, description="Target office")
    consultant_id: str | None = Field(default=None, description="Target consultant")


DispatchMode = Annotated[AutomaticMode | ManualMode, Field(discriminator="kind")]


class AssignmentResult(BaseModel):
    """Outcome of one dispatch."""

    model_config = ConfigDict(frozen=True)

    lead_id: str = Field(..., description="Dispatched lead")
    outcome: DispatchOutcome = Field(
        ...,
        description=(
            "What happened. Only 'assigned' writes the lead and adds an audit entry; "
            "'unchanged' means the target already matched, including a manual dispatch "
            "to the current office and consultant"
        ),
    )
    mode: Literal["automatic", "manual"] = Field(..., description="Dispatch mode used")
    rule_id: UUID | None = Field(default=None, description="Matched rule, automatic mode only")
    office_id: str | None = Field(default=None, description="Office after dispatch")
    consultant_id: str | None = Field(default=None, description="Consultant after dispatch")
    previous_office_id: str | None = Field(default=None, description="Office before dispatch")
    previous_consultant_id: str | None = Field(
        default=None, description="Consultant before dispatch"
    )
    audit_entry_id: UUID | None = Field(default=None, description="Entry written by the commit")
    lead_version: int | None = Field(default=None, description="Lead version after dispatch")
    replayed: bool = Field(
        default=False,
        description="True when returned from an earlier attempt with the same idempotency key",
    )

    @property
    def committed(self) -> bool:
        return self.outcome == DispatchOutcome.ASSIGNED


class DispatchFailure(BaseModel):
    """Error captured for one lead of a bulk dispatch."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")


class BulkDispatchItem(BaseModel):
    """Per-lead entry of a bulk dispatch; exactly one of result and error is set."""

    model_config = ConfigDict(frozen=True)

    lead_id: str
    result: AssignmentResult | None = None
    error: DispatchFailure | None = None


class RuleEvaluation(BaseModel):
    """Verdict of one rule against one lead."""

    model_config = ConfigDict(frozen=True)

    rule_id: UUID
    priority: int
    matched: bool
    failed_criteria: list[str] = Field(default_factory=list)


class MatchPreview(BaseModel):
    """What automatic dispatch would select for a lead, without writing."""

    model_config = ConfigDict(frozen=True)

    lead_id: str
    rule: Rule | None = Field(default=None, description="First matching rule")
    evaluations: list[RuleEvaluation] = Field(
        default_factory=list, description="Every rule in evaluation order"
    )
