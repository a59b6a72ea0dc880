"""Store error hierarchy for persistence backends.

Backend-specific failures (asyncpg errors, HTTP transport errors from the
staff directory) are wrapped in one of these so callers never depend on a
driver's exception types.
"""


class StoreError(Exception):
    """Base exception for all store errors."""

    code = "BACKEND_UNAVAILABLE"

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConnectionError(StoreError):
    """Raised when a backend cannot be reached or returns a transport error."""

    pass


class ConflictError(StoreError):
    """Raised on a unique constraint violation."""

    code = "CONFLICT"
