"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from eventbooking.db.base import as_utc
from eventbooking.models.event import EventStatus
from eventbooking.schemas.user import UserSummary


class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=1000)
    date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    total_seats: int = Field(..., gt=0, le=100000)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)

    @field_validator("date")
    @classmethod
    def _date_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class EventUpdate(BaseModel):
    """
    Descriptive fields only. organizer_id, total_seats and available_seats are
    not part of the schema, so pydantic drops them from incoming payloads.
    """

    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    status: Optional[EventStatus] = None

    @field_validator("date")
    @classmethod
    def _date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class EventSummary(BaseModel):
    id: int
    title: str
    date: datetime
    location: str
    price: Decimal
    status: str

    model_config = {"from_attributes": True}


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    date: datetime
    location: str
    total_seats: int
    available_seats: int
    price: Decimal
    status: str
    is_sold_out: bool
    organizer_id: int
    organizer: Optional[UserSummary] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class EventDeleteResponse(BaseModel):
    message: str
    event_id: int
