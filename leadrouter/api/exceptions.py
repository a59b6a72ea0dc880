"""API exception hierarchy and domain error mapping.

API-layer errors inherit from LeadRouterAPIError. Routing and store
errors raised by the core are mapped to a status code and error code
here, and turned into ErrorResponse bodies by the handlers in app.py.
"""

from leadrouter.api.models.errors import ErrorCode
from leadrouter.db.errors import ConflictError, StoreError
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


class LeadRouterAPIError(Exception):
    """Base exception for API-layer errors.

    Subclasses set status_code and error_code to define the HTTP response.
    """

    status_code: int = 500
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidRequestError(LeadRouterAPIError):
    """Raised when a request is well-formed but not acceptable."""

    status_code = 400
    error_code = ErrorCode.INVALID_REQUEST


# Most specific class first
_ROUTING_ERRORS: tuple[tuple[type[RoutingError], int, ErrorCode], ...] = (
    (RuleValidationError, 422, ErrorCode.RULE_VALIDATION_FAILED),
    (InvalidMembershipError, 409, ErrorCode.INVALID_MEMBERSHIP),
    (AssignmentError, 409, ErrorCode.ASSIGNMENT_FAILED),
    (RuleNotFoundError, 404, ErrorCode.RULE_NOT_FOUND),
    (LeadNotFoundError, 404, ErrorCode.LEAD_NOT_FOUND),
    (NotFoundError, 404, ErrorCode.NOT_FOUND),
    (ConcurrentModificationError, 409, ErrorCode.CONCURRENT_MODIFICATION),
)


def map_routing_error(exc: RoutingError) -> tuple[int, ErrorCode]:
    """HTTP status and error code for a routing error."""
    for error_type, status_code, error_code in _ROUTING_ERRORS:
        if isinstance(exc, error_type):
            return status_code, error_code
    return 400, ErrorCode.INVALID_REQUEST


def map_store_error(exc: StoreError) -> tuple[int, ErrorCode]:
    """HTTP status and error code for a store error."""
    if isinstance(exc, ConflictError):
        return 409, ErrorCode.CONFLICT
    return 503, ErrorCode.BACKEND_UNAVAILABLE
