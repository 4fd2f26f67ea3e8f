"""
Event service handling CRUD operations and change notifications.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.exceptions import EventHasBookings, Forbidden, InvalidRequest, NotFound
from eventbooking.core.logging import get_logger
from eventbooking.db.base import as_utc, utcnow
from eventbooking.jobs.queue import JobKind, JobQueue
from eventbooking.models.booking import Booking, BookingStatus
from eventbooking.models.event import Event, EventStatus
from eventbooking.models.user import User
from eventbooking.schemas.event import EventCreate
from eventbooking.services.seat_ledger import SeatLedger

logger = get_logger(__name__)

# Seat inventory and ownership never change through an update
PROTECTED_FIELDS = frozenset({"organizer_id", "total_seats", "available_seats"})
UPDATABLE_FIELDS = ("title", "description", "date", "location", "price", "status")


async def create_event(db: AsyncSession, event_data: EventCreate, organizer: User) -> Event:
    """Create a new event with full seat availability."""
    if event_data.date <= utcnow():
        raise InvalidRequest("Event date must be in the future")

    event = Event(
        title=event_data.title,
        description=event_data.description,
        date=event_data.date,
        location=event_data.location,
        total_seats=event_data.total_seats,
        available_seats=event_data.total_seats,  # All seats available initially
        price=event_data.price,
        organizer_id=organizer.id,
        status=EventStatus.ACTIVE.value,
    )
    db.add(event)
    await db.commit()

    logger.info("event_created", event_id=event.id, title=event.title, seats=event.total_seats)
    return await get_event(db, event.id)


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFound(f"Event {event_id} not found")
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    status: Optional[str] = None,
) -> tuple[list[Event], int]:
    """
    List events with pagination, soonest first.
    Uses the ix_events_date_status index for date/status filtering.
    """
    query = select(Event)

    if upcoming_only:
        query = query.where(Event.date >= utcnow())
    if status:
        query = query.where(Event.status == status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _unchanged(current: Any, incoming: Any) -> bool:
    if isinstance(current, datetime) and isinstance(incoming, datetime):
        return as_utc(current) == as_utc(incoming)
    if isinstance(current, Decimal) or isinstance(incoming, Decimal):
        return Decimal(str(current)) == Decimal(str(incoming))
    return current == incoming


async def update_event(
    db: AsyncSession,
    job_queue: JobQueue,
    event_id: int,
    organizer: User,
    changes: dict[str, Any],
) -> Event:
    """
    Apply descriptive changes to an event owned by the organizer.

    organizer_id, total_seats and available_seats are dropped from the payload.
    Only fields whose value differs from the stored one are written; if any
    did and the event has confirmed bookings, one event-update-notification
    job is queued after the commit.
    """
    organizer_id = organizer.id
    event = await get_event(db, event_id)
    if event.organizer_id != organizer_id:
        raise Forbidden("Not authorized to update this event")

    stripped = sorted(PROTECTED_FIELDS.intersection(changes))
    if stripped:
        logger.info("event_update_fields_stripped", event_id=event_id, fields=stripped)
    changes = {name: _plain(value) for name, value in changes.items() if name not in PROTECTED_FIELDS}

    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    if unknown:
        raise InvalidRequest(f"Cannot update field(s): {', '.join(unknown)}")
    nulls = sorted(name for name, value in changes.items() if value is None)
    if nulls:
        raise InvalidRequest(f"Field(s) cannot be empty: {', '.join(nulls)}")

    updated_fields = [
        name for name in UPDATABLE_FIELDS
        if name in changes and not _unchanged(getattr(event, name), changes[name])
    ]
    if not updated_fields:
        logger.info("event_update_noop", event_id=event_id)
        return event

    if "date" in updated_fields and as_utc(changes["date"]) <= utcnow():
        raise InvalidRequest("Event date must be in the future")

    for name in updated_fields:
        setattr(event, name, changes[name])
    await db.commit()
    event = await get_event(db, event_id)

    logger.info("event_updated", event_id=event_id, updated_fields=updated_fields)

    customers = await confirmed_customers(db, event_id)
    if customers:
        job_queue.enqueue(
            JobKind.EVENT_UPDATE_NOTIFICATION,
            {
                "event_id": event.id,
                "event_title": event.title,
                "updated_fields": updated_fields,
                "customers": customers,
            },
        )
    return event


async def confirmed_customers(db: AsyncSession, event_id: int) -> list[dict[str, str]]:
    """Name and email of each distinct customer holding a confirmed booking."""
    result = await db.execute(
        select(User.id, User.name, User.email)
        .join(Booking, Booking.customer_id == User.id)
        .where(
            Booking.event_id == event_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        .order_by(Booking.booking_date.asc(), Booking.id.asc())
    )
    customers: dict[int, dict[str, str]] = {}
    for user_id, name, email in result.all():
        customers.setdefault(user_id, {"name": name, "email": email})
    return list(customers.values())


async def confirmed_booking_count(db: AsyncSession, event_id: int) -> int:
    return (await db.execute(
        select(func.count(Booking.id)).where(
            Booking.event_id == event_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
    )).scalar()


async def delete_event(db: AsyncSession, ledger: SeatLedger, event_id: int, organizer: User) -> None:
    """
    Delete an event that has no confirmed bookings.

    The ledger lock keeps this process's bookings out. Bookings from other
    processes bump the event version, so the final DELETE is conditional on
    the version read before the count; a mismatch aborts the whole delete.
    Only cancelled bookings are removed with the event.
    """
    organizer_id = organizer.id
    event = await get_event(db, event_id)
    if event.organizer_id != organizer_id:
        raise Forbidden("Not authorized to delete this event")

    async with ledger.event_lock(event_id):
        try:
            read_version = (await get_event(db, event_id)).version

            bookings_count = await confirmed_booking_count(db, event_id)
            if bookings_count > 0:
                raise EventHasBookings(
                    f"Cannot delete event with {bookings_count} active booking(s). "
                    "Cancel the event instead."
                )

            await db.execute(
                delete(Booking).where(
                    Booking.event_id == event_id,
                    Booking.status == BookingStatus.CANCELLED.value,
                )
            )
            deleted = await db.execute(
                delete(Event)
                .where(Event.id == event_id, Event.version == read_version)
                .execution_options(synchronize_session=False)
            )
            if deleted.rowcount == 0:
                logger.info("event_delete_conflict", event_id=event_id, read_version=read_version)
                raise EventHasBookings(
                    "Event was booked while it was being deleted. Cancel the event instead."
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    db.expunge(event)
    logger.info("event_deleted", event_id=event_id, organizer_id=organizer_id)
