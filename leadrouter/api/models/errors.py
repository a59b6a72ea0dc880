"""Error response models for consistent API error handling."""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    INVALID_REQUEST = "INVALID_REQUEST"
    """Request validation failed (malformed JSON, missing fields, etc.)."""

    UNAUTHORIZED = "UNAUTHORIZED"
    """Missing, invalid or expired bearer token."""

    RULE_VALIDATION_FAILED = "RULE_VALIDATION_FAILED"
    """A rule draft or patch violates a rule constraint."""

    RULE_NOT_FOUND = "RULE_NOT_FOUND"
    """The specified rule does not exist."""

    LEAD_NOT_FOUND = "LEAD_NOT_FOUND"
    """The specified lead does not exist."""

    NOT_FOUND = "NOT_FOUND"
    """The specified resource does not exist."""

    INVALID_MEMBERSHIP = "INVALID_MEMBERSHIP"
    """The consultant is not a member of the target office."""

    ASSIGNMENT_FAILED = "ASSIGNMENT_FAILED"
    """The assignment could not be committed."""

    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    """The lead changed since it was read; retry with a fresh copy."""

    CONFLICT = "CONFLICT"
    """The write conflicts with existing data."""

    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
    """The database or the office directory could not be reached."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred."""


class ErrorDetail(BaseModel):
    """Field-level error information for validation errors."""

    field: str | None = None
    """The field that caused the error, if applicable."""

    message: str
    """Human-readable error description."""


class ErrorBody(BaseModel):
    """Error body content for API error responses."""

    code: ErrorCode
    """Machine-readable error code."""

    message: str
    """Human-readable error message."""

    field: str | None = None
    """Offending field for rule validation failures."""

    details: list[ErrorDetail] | dict[str, Any] | None = None
    """Additional error details."""


class ErrorResponse(BaseModel):
    """Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "INVALID_MEMBERSHIP",
                "message": "Consultant c-7 is not a member of office o-2"
            }
        }
    """

    error: ErrorBody
