"""Health check and metrics endpoints."""

import time

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from leadrouter import __version__
from leadrouter.api import dependencies
from leadrouter.api.dependencies import MembershipIndexDep, SettingsDep
from leadrouter.api.models.health import ComponentHealth, HealthResponse, HealthStatus
from leadrouter.db.errors import StoreError
from leadrouter.membership import MembershipIndex
from leadrouter.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Office id that never exists; looking it up exercises the directory round trip
_SENTINEL_OFFICE_ID = "__health__"


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


async def _check_storage(backend: str) -> ComponentHealth:
    if backend != "postgres":
        return ComponentHealth(name="storage", status="healthy", backend=backend)

    start = time.perf_counter()
    status: HealthStatus = "unhealthy"
    message = None
    try:
        pool = await dependencies.get_postgres_pool()
        if await pool.health_check():
            status = "healthy"
    except StoreError as e:
        message = str(e)
    return ComponentHealth(
        name="storage",
        status=status,
        backend=backend,
        latency_ms=_elapsed_ms(start),
        message=message,
    )


async def _check_directory(backend: str, membership: MembershipIndex) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await membership.office_exists(_SENTINEL_OFFICE_ID)
    except StoreError as e:
        return ComponentHealth(
            name="office_directory",
            status="degraded",
            backend=backend,
            latency_ms=_elapsed_ms(start),
            message=str(e),
        )
    return ComponentHealth(
        name="office_directory",
        status="healthy",
        backend=backend,
        latency_ms=_elapsed_ms(start),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: SettingsDep,
    membership: MembershipIndexDep,
) -> HealthResponse:
    """Report storage and office directory health.

    Storage being down makes the service unhealthy. The office directory
    being down makes it degraded: rules and history can still be read,
    but nothing can be dispatched.
    """
    components = [
        await _check_storage(settings.storage.backend),
        await _check_directory(settings.directory.backend, membership),
    ]
    status = HealthResponse.overall(components)
    if status != "healthy":
        logger.warning(
            "health_check_failed",
            status=status,
            failing=[c.name for c in components if c.status != "healthy"],
        )
    return HealthResponse(status=status, version=__version__, components=components)


async def get_metrics() -> Response:
    """Prometheus text exposition of the default registry."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
