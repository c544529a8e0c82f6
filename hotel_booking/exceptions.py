"""
Booking error taxonomy.

Every error the booking engine raises is an ``APIException`` so DRF renders it
with the right status code; the engine itself never returns sentinels for a
rule violation.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BookingError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Booking request rejected."
    default_code = "booking_error"


class ValidationError(BookingError):
    """Malformed or missing input. Rejected before anything is persisted."""
    default_detail = "Invalid booking data."
    default_code = "invalid"


class AuthorizationError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have access to this booking."
    default_code = "forbidden"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ConflictError(BookingError):
    """Business-rule rejection: unavailable room or illegal transition."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current booking state."
    default_code = "conflict"


class TransientStoreError(BookingError):
    """Connectivity or timeout failure of the store. The only retryable error."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The booking service is temporarily unavailable, please try again."
    default_code = "temporarily_unavailable"


def booking_exception_handler(exc, context):
    """DRF exception handler that adds an error ``code`` and hides store internals."""
    if isinstance(exc, TransientStoreError):
        view = context.get("view")
        logger.error("Store failure in %s: %s", view.__class__.__name__ if view else "unknown view", exc.detail)
        exc = TransientStoreError()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, BookingError):
        response.data = {"error": str(exc.detail), "code": exc.get_codes()}
    return response
