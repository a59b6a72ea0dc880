"""API route registration."""

from fastapi import APIRouter, FastAPI

from leadrouter.observability.logging import get_logger

logger = get_logger(__name__)


def create_v1_router() -> APIRouter:
    """Create the v1 API router with all routes."""
    router = APIRouter(prefix="/v1")

    from leadrouter.api.routes.leads import router as leads_router
    from leadrouter.api.routes.rules import router as rules_router

    router.include_router(rules_router, tags=["Rules"])
    router.include_router(leads_router, tags=["Leads"])

    return router


def register_routes(app: FastAPI, *, metrics_path: str | None = "/metrics") -> None:
    """Register all routes with the FastAPI application.

    Args:
        app: FastAPI application instance
        metrics_path: Where to serve Prometheus metrics; None disables them
    """
    app.include_router(create_v1_router())

    from leadrouter.api.routes.health import get_metrics
    from leadrouter.api.routes.health import router as health_router

    app.include_router(health_router, tags=["Health"])
    if metrics_path:
        app.add_api_route(metrics_path, get_metrics, methods=["GET"], tags=["Health"])

    logger.info("routes_registered", metrics_path=metrics_path)
