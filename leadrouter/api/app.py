"""FastAPI application factory.

Creates and configures the FastAPI application with middleware,
exception handlers, and route registration.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from leadrouter import __version__
from leadrouter.api.dependencies import reset_dependencies
from leadrouter.api.exceptions import LeadRouterAPIError, map_routing_error, map_store_error
from leadrouter.api.middleware.context import RequestContextMiddleware
from leadrouter.api.models.errors import ErrorBody, ErrorCode, ErrorDetail, ErrorResponse
from leadrouter.api.routes import register_routes
from leadrouter.config import get_settings
from leadrouter.db.errors import StoreError
from leadrouter.observability.logging import get_logger, setup_logging
from leadrouter.routing.errors import (
    ConcurrentModificationError,
    InvalidMembershipError,
    RoutingError,
    RuleValidationError,
)

logger = get_logger(__name__)

_HTTP_ERROR_CODES = {
    401: ErrorCode.UNAUTHORIZED,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.INVALID_REQUEST,
}


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Release pools and HTTP clients on shutdown."""
    yield
    await reset_dependencies()
    logger.info("app_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a fully configured FastAPI app with:
    - Structured logging configured from settings
    - CORS middleware
    - Request context middleware
    - Global exception handlers
    - All API routes registered

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_pii=log_config.redact_pii,
    )

    docs = settings.api.docs_enabled
    app = FastAPI(
        title="Lead Router API",
        description="Lead distribution rules, dispatch and assignment history",
        version=__version__,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=settings.api.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=settings.api.expose_headers,
    )
    app.add_middleware(RequestContextMiddleware)

    _register_exception_handlers(app)

    metrics = settings.observability.metrics
    register_routes(app, metrics_path=metrics.path if metrics.enabled else None)

    logger.info(
        "app_created",
        debug=settings.debug,
        storage_backend=settings.storage.backend,
        directory_backend=settings.directory.backend,
    )

    return app


def _error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    *,
    field: str | None = None,
    details: list[ErrorDetail] | dict | None = None,
) -> JSONResponse:
    body = ErrorBody(code=code, message=message, field=field, details=details)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=body).model_dump(mode="json", exclude_none=True),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: FastAPI application
    """

    @app.exception_handler(LeadRouterAPIError)
    async def api_error_handler(request: Request, exc: LeadRouterAPIError) -> JSONResponse:
        """Handle LeadRouterAPIError and its subclasses."""
        logger.warning(
            "api_error",
            error_code=exc.error_code.value,
            message=exc.message,
            path=request.url.path,
        )
        return _error_response(exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(RoutingError)
    async def routing_error_handler(request: Request, exc: RoutingError) -> JSONResponse:
        """Handle domain errors raised by stores and the dispatcher."""
        status_code, code = map_routing_error(exc)
        logger.warning(
            "routing_error",
            error_code=code.value,
            message=exc.message,
            path=request.url.path,
        )
        field = exc.field if isinstance(exc, RuleValidationError) else None
        details: dict | None = None
        if isinstance(exc, InvalidMembershipError):
            details = {"consultant_id": exc.consultant_id, "office_id": exc.office_id}
        elif isinstance(exc, ConcurrentModificationError):
            details = {"expected_version": exc.expected, "actual_version": exc.actual}
        return _error_response(status_code, code, exc.message, field=field, details=details)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        """Handle backend failures."""
        status_code, code = map_store_error(exc)
        logger.error(
            "store_error",
            error_code=code.value,
            error=str(exc),
            path=request.url.path,
        )
        return _error_response(status_code, code, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Wrap framework HTTP errors (401 from auth, unknown routes) in the envelope."""
        code = _HTTP_ERROR_CODES.get(exc.status_code, ErrorCode.INVALID_REQUEST)
        response = _error_response(exc.status_code, code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle FastAPI request validation errors."""
        logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return _error_response(
            400, ErrorCode.INVALID_REQUEST, "Request validation failed", details=details
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors raised while building domain models."""
        logger.warning("pydantic_validation_error", errors=exc.errors(), path=request.url.path)
        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return _error_response(
            400, ErrorCode.INVALID_REQUEST, "Data validation failed", details=details
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unexpected_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return _error_response(500, ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


# Create the app instance for uvicorn
app = create_app()
