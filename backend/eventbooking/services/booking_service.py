"""
Booking service: the entry point the API layer drives for bookings.

Seat accounting is delegated to the SeatLedger, which commits before
returning. Only after that commit does this module enqueue the
booking-confirmation job, so a notification can never describe a booking
that was rolled back. Cancellations are not announced to the customer.
"""

import time
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.exceptions import BookingSystemError
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import (
    booking_latency,
    record_booking_attempt,
    record_cancellation,
    seats_released,
    seats_reserved,
)
from eventbooking.jobs.queue import JobKind, JobQueue
from eventbooking.models.booking import Booking
from eventbooking.models.user import User
from eventbooking.schemas.booking import BookingStats
from eventbooking.services.seat_ledger import SeatLedger

logger = get_logger(__name__)


def _outcome(exc: Exception) -> str:
    if isinstance(exc, BookingSystemError) and exc.status_code < 500:
        return "rejected"
    return "error"


def confirmation_payload(booking: Booking) -> dict[str, Any]:
    """Details captured at booking time for the confirmation notice."""
    return {
        "booking_id": booking.id,
        "event_id": booking.event_id,
        "event_title": booking.event.title,
        "customer_name": booking.customer.name,
        "customer_email": booking.customer.email,
        "number_of_tickets": booking.number_of_tickets,
        "total_amount": booking.total_amount,
        "booking_date": booking.booking_date,
    }


async def create_booking(
    db: AsyncSession,
    ledger: SeatLedger,
    job_queue: JobQueue,
    customer: User,
    event_id: Optional[int],
    number_of_tickets: Optional[int],
) -> Booking:
    """
    Book tickets for an event.
    Raises a BookingSystemError subclass when the booking is refused.
    """
    customer_id = customer.id
    started = time.perf_counter()
    try:
        booking = await ledger.create_booking(db, event_id, customer_id, number_of_tickets)
    except Exception as exc:
        record_booking_attempt(_outcome(exc))
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)

    record_booking_attempt("success")
    seats_reserved.inc(booking.number_of_tickets)

    job = job_queue.enqueue(JobKind.BOOKING_CONFIRMATION, confirmation_payload(booking))
    logger.info("booking_confirmation_queued", booking_id=booking.id, job_id=job.id)
    return booking


async def cancel_booking(
    db: AsyncSession,
    ledger: SeatLedger,
    booking_id: int,
    requester: User,
) -> Booking:
    """Cancel the requester's own booking and release its seats."""
    requester_id = requester.id
    try:
        booking = await ledger.cancel_booking(db, booking_id, requester_id)
    except Exception as exc:
        record_cancellation(_outcome(exc))
        raise

    record_cancellation("success")
    seats_released.inc(booking.number_of_tickets)
    return booking


async def get_customer_bookings(db: AsyncSession, ledger: SeatLedger, customer: User) -> list[Booking]:
    """Get all bookings for a customer, newest first."""
    return await ledger.list_for_customer(db, customer.id)


async def get_event_bookings(
    db: AsyncSession,
    ledger: SeatLedger,
    event_id: int,
    organizer: User,
) -> tuple[list[Booking], BookingStats]:
    """Bookings for one of the organizer's events, with aggregate statistics."""
    return await ledger.list_for_event(db, event_id, organizer.id)
