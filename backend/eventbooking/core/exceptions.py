"""
Error taxonomy for the booking core.

Every failure a ledger, event or job operation can report is a subclass of
BookingSystemError carrying a stable machine-readable ``code``, the HTTP status
the API layer maps it to, and a human-readable message
(e.g. "Only 3 seats available").
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from eventbooking.core.logging import get_logger

logger = get_logger(__name__)


class BookingSystemError(Exception):
    code = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequest(BookingSystemError):
    code = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(BookingSystemError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(BookingSystemError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class EventInactive(BookingSystemError):
    code = "event_inactive"
    status_code = status.HTTP_400_BAD_REQUEST


class EventPast(BookingSystemError):
    code = "event_past"
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientSeats(BookingSystemError):
    code = "insufficient_seats"
    status_code = status.HTTP_409_CONFLICT


class AlreadyCancelled(BookingSystemError):
    code = "already_cancelled"
    status_code = status.HTTP_400_BAD_REQUEST


class EventHasBookings(BookingSystemError):
    code = "event_has_bookings"
    status_code = status.HTTP_400_BAD_REQUEST


class UnknownJobKind(BookingSystemError):
    code = "unknown_job_kind"


class Internal(BookingSystemError):
    code = "internal"


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": code, "detail": message}


async def booking_error_handler(request: Request, exc: BookingSystemError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_error", error=exc.code, detail=exc.message)
    else:
        logger.info("request_rejected", error=exc.code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads are reported as invalid_request, same as ledger input checks."""
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in errors
    ) or "Invalid request"
    logger.info("request_validation_failed", errors=len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(InvalidRequest.code, message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingSystemError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
