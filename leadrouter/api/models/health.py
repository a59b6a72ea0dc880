"""GET /health payloads."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

HealthStatus = Literal["healthy", "degraded", "unhealthy"]

_SEVERITY: dict[HealthStatus, int] = {"healthy": 0, "degraded": 1, "unhealthy": 2}


class ComponentHealth(BaseModel):
    """One dependency of the router: storage or the office directory."""

    name: str
    status: HealthStatus
    backend: str | None = None
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    version: str
    components: list[ComponentHealth] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def overall(components: Iterable[ComponentHealth]) -> HealthStatus:
        """The worst component status, or healthy when there are none."""
        return max(
            (c.status for c in components),
            key=_SEVERITY.__getitem__,
            default="healthy",
        )
