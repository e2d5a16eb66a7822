"""
Translation of service errors into HTTP errors for the booking routes.
"""

from fastapi import HTTPException, status

from app.infrastructure.observability.logging import get_logger
from app.services.errors import (
    BookingError,
    ConflictError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)

logger = get_logger(__name__)


def http_error(error: Exception, operation: str, **context) -> HTTPException:
    """
    Log `error` and build the HTTPException to raise for it.

    Validation 400, conflict 409, not found 404, partial failure 502, anything else 500.
    """
    if isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, ConflictError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, PartialFailureError):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if status_code >= 500:
        logger.error(
            f"{operation} failed",
            error=str(error),
            error_type=type(error).__name__,
            status_code=status_code,
            **context,
        )
    else:
        logger.info(
            f"{operation} rejected",
            error=str(error),
            error_type=type(error).__name__,
            status_code=status_code,
            **context,
        )

    if isinstance(error, BookingError):
        detail = {"message": error.message, **error.details}
        if isinstance(error, ConflictError):
            detail["rule"] = error.rule
    elif status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        detail = {"message": f"Failed to {operation.lower()}"}
    else:
        detail = {"message": str(error)}

    return HTTPException(status_code=status_code, detail=detail)
