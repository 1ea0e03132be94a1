from .errors import (
    error_response,
    TravelAppError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ConflictError,
    InvalidRequestError,
    GatewayError,
)

__all__ = [
    "error_response",
    "TravelAppError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidStateError",
    "ConflictError",
    "InvalidRequestError",
    "GatewayError",
]
