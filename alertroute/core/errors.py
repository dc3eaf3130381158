"""Domain errors raised by the dispatch services.

Each error carries the HTTP status it maps to; the handler registered in
``alertroute.main`` renders them as ``{"detail": message}``.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class DispatchError(Exception):
    """Base class for dispatch domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    """Malformed or missing input, or a disallowed status transition."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(DispatchError):
    """Role or ownership mismatch."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DispatchError):
    """Unknown alert, requester or responder."""

    status_code = status.HTTP_404_NOT_FOUND


class ServiceUnavailableError(DispatchError):
    """No eligible responder exists for a new alert."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InternalError(DispatchError):
    """Unexpected failure in a collaborator."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    """Render a DispatchError as a JSON error response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )
