from typing import Dict, Optional
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


class TravelAppError(Exception):
    """Base class for domain failures raised by the service layer.

    Services raise these instead of ``HTTPException`` so they can be called
    directly from tests and background code; ``travel_app.main`` maps each
    subclass to its HTTP status through a single exception handler.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors or {}

    def to_http(self) -> HTTPException:
        detail = {"message": self.message, "field_errors": self.field_errors, "code": self.code}
        return HTTPException(status_code=self.status_code, detail=detail)


class NotFoundError(TravelAppError):
    """Referenced entity is absent or not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ForbiddenError(TravelAppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InvalidStateError(TravelAppError):
    """Well-formed request that violates a business invariant."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_state"


class ConflictError(TravelAppError):
    """A uniqueness or single-resolution rule is already satisfied."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InvalidRequestError(TravelAppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid"


class GatewayError(TravelAppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "gateway_error"
