"""
Seat ledger: the only code allowed to change an event's available_seats.

CONCURRENCY STRATEGY: Per-event lock + Optimistic compare-and-update
====================================================================

Problem:
  Two customers try to book the last seats simultaneously.
  Both read available_seats=4, both decrement by 4, both succeed.
  Result: Overbooking.

Solution, two layers:

  1. In-process: every reserve/release for an event runs while holding that
     event's asyncio.Lock. Requests for the same event queue up; requests for
     different events hold different locks and never wait on each other.

  2. Across processes: the seat write is a conditional UPDATE

       UPDATE events SET available_seats = available_seats - :n,
                         version = version + 1
       WHERE id = :event_id AND version = :read_version
             AND available_seats >= :n

     If rows_affected == 0 another process changed the row between our read
     and our write, so we re-read and retry (up to BOOKING_MAX_RETRIES).
     The DB CHECK constraints (0 <= available_seats <= total_seats) are the
     final safety net.

Atomicity:
  The booking insert/status change and the seat UPDATE share one session
  transaction. The ledger commits it itself so callers can rely on "returned
  means durable"; any error rolls the whole transaction back before it is
  re-raised, so no partial write is ever visible.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.config import get_settings
from eventbooking.core.exceptions import (
    AlreadyCancelled,
    EventInactive,
    EventPast,
    Forbidden,
    InsufficientSeats,
    Internal,
    InvalidRequest,
    NotFound,
)
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import record_db_operation
from eventbooking.db.base import utcnow
from eventbooking.models.booking import Booking, BookingStatus, MAX_TICKETS_PER_BOOKING
from eventbooking.models.event import Event, EventStatus
from eventbooking.schemas.booking import BookingStats

logger = get_logger(__name__)


class SeatLedger:
    def __init__(self, max_retry_attempts: Optional[int] = None):
        settings = get_settings()
        self.max_retry_attempts = max_retry_attempts or settings.BOOKING_MAX_RETRIES
        self.max_tickets = MAX_TICKETS_PER_BOOKING
        # A lock lives only while some coroutine holds or waits on it
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    @asynccontextmanager
    async def event_lock(self, event_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(event_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[event_id] = lock
        async with lock:
            yield

    @asynccontextmanager
    async def _atomic(self, db: AsyncSession, operation: str) -> AsyncIterator[None]:
        """Commit on success; roll back and re-raise on any error."""
        try:
            yield
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("ledger_transaction_failed", operation=operation, error=str(exc))
            raise Internal(f"The {operation} could not be completed") from exc
        except Exception:
            await db.rollback()
            raise

    async def create_booking(
        self,
        db: AsyncSession,
        event_id: Optional[int],
        customer_id: int,
        number_of_tickets: Optional[int],
    ) -> Booking:
        """
        Reserve seats and record a confirmed booking in one transaction.
        Returns the committed booking with event and customer loaded.
        """
        if event_id is None or number_of_tickets is None:
            raise InvalidRequest("Please provide event_id and number_of_tickets")
        if not 1 <= number_of_tickets <= self.max_tickets:
            raise InvalidRequest(f"number_of_tickets must be between 1 and {self.max_tickets}")

        async with self.event_lock(event_id), self._atomic(db, "booking"):
            booking = await self._reserve(db, event_id, customer_id, number_of_tickets)

        logger.info(
            "booking_created",
            booking_id=booking.id,
            customer_id=customer_id,
            event_id=event_id,
            tickets=number_of_tickets,
            total_amount=str(booking.total_amount),
        )
        return await self._load_booking(db, booking.id)

    async def cancel_booking(self, db: AsyncSession, booking_id: int, requester_id: int) -> Booking:
        """
        Cancel a confirmed booking and release its seats in one transaction.
        """
        booking = await self._get_booking(db, booking_id)
        event_id = booking.event_id

        async with self.event_lock(event_id), self._atomic(db, "cancellation"):
            booking = await self._release(db, booking_id, requester_id)

        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            customer_id=requester_id,
            event_id=event_id,
            seats_restored=booking.number_of_tickets,
        )
        return await self._load_booking(db, booking_id)

    async def list_for_customer(self, db: AsyncSession, customer_id: int) -> list[Booking]:
        result = await db.execute(
            select(Booking)
            .where(Booking.customer_id == customer_id)
            .order_by(Booking.booking_date.desc(), Booking.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_event(
        self, db: AsyncSession, event_id: int, requester_id: int
    ) -> tuple[list[Booking], BookingStats]:
        event = await db.get(Event, event_id)
        if not event:
            raise NotFound(f"Event {event_id} not found")
        if event.organizer_id != requester_id:
            raise Forbidden("Not authorized to view bookings for this event")

        result = await db.execute(
            select(Booking)
            .where(Booking.event_id == event_id)
            .order_by(Booking.booking_date.desc(), Booking.id.desc())
        )
        bookings = list(result.scalars().all())
        return bookings, booking_stats(bookings)

    async def _reserve(
        self, db: AsyncSession, event_id: int, customer_id: int, number_of_tickets: int
    ) -> Booking:
        for attempt in range(1, self.max_retry_attempts + 1):
            event = await self._read_event(db, event_id)

            if not event:
                raise NotFound(f"Event {event_id} not found")
            if event.status != EventStatus.ACTIVE.value:
                raise EventInactive("Event is not active")
            if event.date <= utcnow():
                raise EventPast("Cannot book tickets for past events")
            if not event.has_available_seats(number_of_tickets):
                logger.info(
                    "booking_failed_no_seats",
                    event_id=event_id,
                    requested=number_of_tickets,
                    available=event.available_seats,
                )
                raise InsufficientSeats(f"Only {event.available_seats} seats available")

            update_result = await db.execute(
                update(Event)
                .where(
                    Event.id == event_id,
                    Event.version == event.version,
                    Event.available_seats >= number_of_tickets,
                )
                .values(
                    available_seats=Event.available_seats - number_of_tickets,
                    version=Event.version + 1,
                )
                .execution_options(synchronize_session=False)
            )

            if update_result.rowcount == 0:
                # Version conflict - another process modified this event
                record_db_operation("retry")
                logger.info("booking_retry", event_id=event_id, attempt=attempt, reason="version_conflict")
                continue

            record_db_operation("write")
            booking = Booking(
                event_id=event_id,
                customer_id=customer_id,
                number_of_tickets=number_of_tickets,
                total_amount=Decimal(event.price) * number_of_tickets,
                status=BookingStatus.CONFIRMED.value,
                booking_date=utcnow(),
            )
            db.add(booking)
            await db.flush()
            return booking

        raise Internal("Booking failed due to high demand. Please try again.")

    async def _release(self, db: AsyncSession, booking_id: int, requester_id: int) -> Booking:
        # Re-read under the lock: a concurrent cancel may have won
        booking = await self._get_booking(db, booking_id, fresh=True)

        if booking.customer_id != requester_id:
            raise Forbidden("Not authorized to cancel this booking")
        if booking.is_cancelled:
            raise AlreadyCancelled("Booking is already cancelled")

        flipped = await db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(status=BookingStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount == 0:
            raise AlreadyCancelled("Booking is already cancelled")

        await db.execute(
            update(Event)
            .where(Event.id == booking.event_id)
            .values(
                available_seats=Event.available_seats + booking.number_of_tickets,
                version=Event.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        record_db_operation("write")
        return booking

    async def _read_event(self, db: AsyncSession, event_id: int) -> Optional[Event]:
        record_db_operation("read")
        result = await db.execute(
            select(Event)
            .where(Event.id == event_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _get_booking(self, db: AsyncSession, booking_id: int, fresh: bool = False) -> Booking:
        query = select(Booking).where(Booking.id == booking_id)
        if fresh:
            query = query.execution_options(populate_existing=True)
        booking = (await db.execute(query)).scalar_one_or_none()
        if not booking:
            raise NotFound("Booking not found")
        return booking

    async def _load_booking(self, db: AsyncSession, booking_id: int) -> Booking:
        """Committed booking with event and customer refreshed for display."""
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one()
        # seat counts were written with Core UPDATEs; drop the stale copy
        await db.refresh(booking.event)
        return booking


def booking_stats(bookings: list[Booking]) -> BookingStats:
    confirmed = [b for b in bookings if b.status == BookingStatus.CONFIRMED.value]
    return BookingStats(
        total_bookings=len(bookings),
        confirmed_bookings=len(confirmed),
        cancelled_bookings=sum(1 for b in bookings if b.status == BookingStatus.CANCELLED.value),
        total_tickets_sold=sum(b.number_of_tickets for b in confirmed),
        total_revenue=sum((Decimal(b.total_amount) for b in confirmed), Decimal("0")),
    )
