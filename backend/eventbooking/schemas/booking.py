"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from eventbooking.models.booking import MAX_TICKETS_PER_BOOKING
from eventbooking.schemas.event import EventSummary
from eventbooking.schemas.user import UserSummary


class BookingCreate(BaseModel):
    event_id: int
    number_of_tickets: int = Field(..., ge=1, le=MAX_TICKETS_PER_BOOKING)


class BookingResponse(BaseModel):
    id: int
    event_id: int
    customer_id: int
    number_of_tickets: int
    total_amount: Decimal
    status: str
    booking_date: datetime
    event: Optional[EventSummary] = None
    customer: Optional[UserSummary] = None

    model_config = {"from_attributes": True}


class BookingStats(BaseModel):
    total_bookings: int = 0
    confirmed_bookings: int = 0
    cancelled_bookings: int = 0
    total_tickets_sold: int = 0
    total_revenue: Decimal = Decimal("0")


class EventBookingsResponse(BaseModel):
    count: int
    stats: BookingStats
    bookings: list[BookingResponse]
