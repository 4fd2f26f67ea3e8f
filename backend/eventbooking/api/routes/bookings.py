"""
Booking endpoints with concurrency-safe seat reservation.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.api.deps import get_job_queue, get_seat_ledger, require_customer, require_organizer
from eventbooking.db.session import get_db
from eventbooking.jobs.queue import JobQueue
from eventbooking.models.user import User
from eventbooking.schemas.booking import BookingCreate, BookingResponse, EventBookingsResponse
from eventbooking.services import booking_service
from eventbooking.services.cache_service import invalidate_event_cache
from eventbooking.services.seat_ledger import SeatLedger

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    customer: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
    ledger: SeatLedger = Depends(get_seat_ledger),
    job_queue: JobQueue = Depends(get_job_queue),
):
    """
    Book tickets for an event.

    Seats are reserved under a per-event lock with an optimistic version
    check, so concurrent requests can never oversell. A confirmation notice
    is queued once the booking is committed.
    """
    booking = await booking_service.create_booking(
        db, ledger, job_queue, customer, booking_data.event_id, booking_data.number_of_tickets
    )
    # Invalidate event list cache since available_seats changed
    await invalidate_event_cache()
    return booking


@router.get("/my", response_model=list[BookingResponse])
async def list_my_bookings(
    customer: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
    ledger: SeatLedger = Depends(get_seat_ledger),
):
    """Get all bookings for the authenticated customer."""
    return await booking_service.get_customer_bookings(db, ledger, customer)


@router.get("/event/{event_id}", response_model=EventBookingsResponse)
async def list_event_bookings(
    event_id: int,
    organizer: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
    ledger: SeatLedger = Depends(get_seat_ledger),
):
    """Bookings for one of your events, with sales statistics."""
    bookings, stats = await booking_service.get_event_bookings(db, ledger, event_id, organizer)
    return EventBookingsResponse(
        count=len(bookings),
        stats=stats,
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.delete("/{booking_id}", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    customer: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
    ledger: SeatLedger = Depends(get_seat_ledger),
):
    """Cancel a booking and release seats back to the event."""
    booking = await booking_service.cancel_booking(db, ledger, booking_id, customer)
    await invalidate_event_cache()
    return booking
