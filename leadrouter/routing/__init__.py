"""Lead distribution: rules, matching and dispatch.

Rules are matched first-match by ascending priority, ties broken by the
rule store's listing order. The dispatcher validates the resolved target
against the membership index and commits the assignment together with
its audit entry.
"""

from leadrouter.routing.dispatcher import Dispatcher
from leadrouter.routing.errors import (
    AssignmentError,
    ConcurrentModificationError,
    InvalidMembershipError,
    LeadNotFoundError,
    NotFoundError,
    RoutingError,
    RuleNotFoundError,
    RuleValidationError,
)
from leadrouter.routing.filtering import filter_rules
from leadrouter.routing.locks import LeadLocks
from leadrouter.routing.matcher import evaluation_order, explain, match
from leadrouter.routing.selection import (
    ConsultantSelectionStrategy,
    LeastLoadedSelectionStrategy,
    ManualPickSelectionStrategy,
    RoundRobinSelectionStrategy,
    create_selection_strategy,
)
from leadrouter.routing.validation import RuleValidator

__all__ = [
    "AssignmentError",
    "ConcurrentModificationError",
    "ConsultantSelectionStrategy",
    "Dispatcher",
    "InvalidMembershipError",
    "LeadLocks",
    "LeadNotFoundError",
    "LeastLoadedSelectionStrategy",
    "ManualPickSelectionStrategy",
    "NotFoundError",
    "RoundRobinSelectionStrategy",
    "RoutingError",
    "RuleNotFoundError",
    "RuleValidationError",
    "RuleValidator",
    "create_selection_strategy",
    "evaluation_order",
    "explain",
    "filter_rules",
    "match",
]
