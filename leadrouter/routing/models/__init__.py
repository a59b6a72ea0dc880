"""Routing domain models."""

from leadrouter.routing.models.base import TimestampedModel, blank_to_none, utc_now
from leadrouter.routing.models.enums import (
    DispatchOutcome,
    LeadSource,
    LeadStatus,
    PriorityBand,
)
from leadrouter.routing.models.lead import Lead, StudyPreferences
from leadrouter.routing.models.result import (
    AssignmentResult,
    AutomaticMode,
    BulkDispatchItem,
    DispatchFailure,
    DispatchMode,
    ManualMode,
    MatchPreview,
    RuleEvaluation,
)
from leadrouter.routing.models.rule import (
    CRITERIA_FIELDS,
    Rule,
    RuleCriteria,
    RuleDraft,
    RulePatch,
)

__all__ = [
    "CRITERIA_FIELDS",
    "AssignmentResult",
    "AutomaticMode",
    "BulkDispatchItem",
    "DispatchFailure",
    "DispatchMode",
    "DispatchOutcome",
    "Lead",
    "LeadSource",
    "LeadStatus",
    "ManualMode",
    "MatchPreview",
    "PriorityBand",
    "Rule",
    "RuleCriteria",
    "RuleDraft",
    "RuleEvaluation",
    "RulePatch",
    "StudyPreferences",
    "TimestampedModel",
    "blank_to_none",
    "utc_now",
]
