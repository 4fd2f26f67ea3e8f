from eventbooking.schemas.user import UserSummary
from eventbooking.schemas.event import (
    EventCreate, EventUpdate, EventSummary, EventResponse, EventListResponse, EventDeleteResponse,
)
from eventbooking.schemas.booking import (
    BookingCreate, BookingResponse, BookingStats, EventBookingsResponse,
)

__all__ = [
    "UserSummary",
    "EventCreate", "EventUpdate", "EventSummary", "EventResponse", "EventListResponse",
    "EventDeleteResponse",
    "BookingCreate", "BookingResponse", "BookingStats", "EventBookingsResponse",
]
