"""Request context models for middleware and observability."""

from pydantic import BaseModel, ConfigDict, Field


class OperatorContext(BaseModel):
    """Caller identity extracted from the bearer token.

    ``actor_id`` is recorded on every audit entry the request produces.
    """

    actor_id: str
    """Operator identifier from the JWT 'sub' claim."""

    roles: list[str] = Field(default_factory=list)
    """Roles from JWT claims; carried for logging, not enforced."""

    model_config = ConfigDict(frozen=True)


class RequestContext(BaseModel):
    """Request identifiers bound to every log line of a request."""

    request_id: str
    """Request ID, taken from X-Request-ID or generated."""

    actor_id: str | None = None
    """Operator, once authenticated."""
