"""JWT authentication for API requests."""

import os
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from leadrouter.api.middleware.context import update_request_context
from leadrouter.api.models.context import OperatorContext
from leadrouter.observability.logging import get_logger

logger = get_logger(__name__)

# Security scheme for OpenAPI docs
security_scheme = HTTPBearer(auto_error=False)


def get_jwt_secret() -> str:
    """Get JWT secret from environment."""
    secret = os.environ.get("LEADROUTER_JWT_SECRET")
    if not secret:
        raise RuntimeError("LEADROUTER_JWT_SECRET environment variable not set")
    return secret


def get_jwt_algorithm() -> str:
    """Get JWT algorithm from environment."""
    return os.environ.get("LEADROUTER_JWT_ALGORITHM", "HS256")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_operator_context(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)],
) -> OperatorContext:
    """Extract the acting operator from the bearer token.

    The token only establishes who is acting; permission checks are the
    job of the gateway in front of this service.

    Raises:
        HTTPException: 401 if token is missing, invalid, expired or has no subject
    """
    if credentials is None:
        logger.warning("auth_missing_token", path=request.url.path)
        raise _unauthorized("Missing authentication token")

    try:
        payload = jwt.decode(
            credentials.credentials,
            get_jwt_secret(),
            algorithms=[get_jwt_algorithm()],
        )
    except JWTError as e:
        logger.warning("auth_jwt_error", error=str(e), path=request.url.path)
        raise _unauthorized("Invalid or expired token") from None

    subject = payload.get("sub")
    if not subject:
        logger.warning("auth_missing_subject", path=request.url.path)
        raise _unauthorized("Token missing sub claim")

    try:
        context = OperatorContext(actor_id=subject, roles=payload.get("roles", []))
    except ValidationError as e:
        logger.warning("auth_validation_error", error=str(e), path=request.url.path)
        raise _unauthorized("Invalid token claims") from None

    update_request_context(actor_id=context.actor_id)
    logger.debug("auth_success", actor_id=context.actor_id)
    return context


# Type alias for dependency injection
OperatorContextDep = Annotated[OperatorContext, Depends(get_operator_context)]
