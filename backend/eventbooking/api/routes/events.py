"""
Event endpoints with Redis caching on list operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.api.deps import get_job_queue, get_seat_ledger, require_organizer
from eventbooking.db.session import get_db
from eventbooking.jobs.queue import JobQueue
from eventbooking.models.event import EventStatus
from eventbooking.models.user import User
from eventbooking.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse, EventDeleteResponse,
)
from eventbooking.services import event_service
from eventbooking.services.cache_service import (
    current_generation, get_cached_events, set_cached_events, invalidate_event_cache,
)
from eventbooking.services.seat_ledger import SeatLedger
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    organizer: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Organizers only."""
    event = await event_service.create_event(db, event_data, organizer)
    await invalidate_event_cache()
    return event


@router.get("/", response_model=EventListResponse)
async def list_events(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    """
    List events with pagination.
    Results are cached in Redis; the cache is dropped whenever seats or
    events change.
    """
    status_value = event_status.value if event_status else None

    cached = await get_cached_events(page, page_size, upcoming_only, status_value)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    generation = await current_generation()
    events, total = await event_service.list_events(db, page, page_size, upcoming_only, status_value)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }

    await set_cached_events(page, page_size, upcoming_only, status_value, response_data, generation)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single event by ID. Not cached (needs real-time seat counts)."""
    return await event_service.get_event(db, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    event_data: EventUpdate,
    organizer: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
    job_queue: JobQueue = Depends(get_job_queue),
):
    """
    Update descriptive fields of your event.
    Customers with confirmed bookings are notified of any actual change.
    """
    event = await event_service.update_event(
        db, job_queue, event_id, organizer, event_data.model_dump(exclude_unset=True)
    )
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", response_model=EventDeleteResponse)
async def delete_event(
    event_id: int,
    organizer: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
    ledger: SeatLedger = Depends(get_seat_ledger),
):
    """Delete your event. Refused while it has confirmed bookings."""
    await event_service.delete_event(db, ledger, event_id, organizer)
    await invalidate_event_cache()
    return EventDeleteResponse(message="Event deleted successfully", event_id=event_id)
