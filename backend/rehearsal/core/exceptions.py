"""
Domain error taxonomy and the FastAPI handlers that render it.

Services raise these instead of HTTPException so the same rules apply
whether the core is driven by a route, a script or a test.
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from rehearsal.core.logging import get_logger

logger = get_logger(__name__)


class RehearsalError(Exception):
    """Base application error with an HTTP status and a category."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    category: str = "internal_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(RehearsalError):
    """Malformed or disallowed input."""
    status_code = status.HTTP_400_BAD_REQUEST
    category = "validation_error"


class PermissionDeniedError(RehearsalError):
    status_code = status.HTTP_403_FORBIDDEN
    category = "permission_denied"


class NotFoundError(RehearsalError):
    status_code = status.HTTP_404_NOT_FOUND
    category = "not_found"


class ConflictError(RehearsalError):
    """Invariant violation, e.g. deleting a capability that is in use."""
    status_code = status.HTTP_409_CONFLICT
    category = "conflict"


class TransportError(RehearsalError):
    """A single outbound send failed. Never fatal to a batch."""
    status_code = status.HTTP_502_BAD_GATEWAY
    category = "transport_error"


class ConfigurationError(RehearsalError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    category = "configuration_error"


async def rehearsal_error_handler(request: Request, exc: RehearsalError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_rejected",
        error=exc.category,
        reason=exc.message,
        status_code=exc.status_code,
        **exc.details,
    )
    body = {"detail": exc.message, "error": exc.category}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """A constraint the services did not pre-check, e.g. a racing duplicate name."""
    logger.warning("integrity_conflict", error=str(exc.orig))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Request conflicts with existing data", "error": ConflictError.category},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RehearsalError, rehearsal_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
