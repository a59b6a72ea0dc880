"""Request context middleware for observability."""

import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from leadrouter.api.models.context import RequestContext
from leadrouter.observability.logging import get_logger

logger = get_logger(__name__)

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_request_context() -> RequestContext | None:
    """Get the current request context, or None outside a request."""
    return _request_context.get()


def update_request_context(*, actor_id: str | None = None) -> None:
    """Add identifiers to the current request context as they become known."""
    current = get_request_context()
    if current is None:
        return
    if actor_id is not None:
        _request_context.set(current.model_copy(update={"actor_id": actor_id}))
        structlog.contextvars.bind_contextvars(actor_id=actor_id)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id to every log line emitted while handling a request.

    The id comes from the X-Request-ID header when present and is echoed
    back on the response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        context = RequestContext(request_id=request_id)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        token = _request_context.set(context)
        request.state.context = context

        logger.debug("request_started", method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            _request_context.reset(token)

        logger.debug(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        response.headers["X-Request-ID"] = request_id
        return response
