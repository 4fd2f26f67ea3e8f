"""
Event model with seat inventory tracking.

Key design decisions:
- `available_seats` is denormalized (avoids COUNT query on bookings) and is only
  ever written by the seat ledger
- `total_seats` is fixed at creation
- `price` is stored as fixed-point money; bookings copy the computed amount
- `version` column enables optimistic locking for concurrent booking
"""

import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from eventbooking.db.base import Base, TimestampMixin, UTCDateTime


class EventStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False)
    date = Column(UTCDateTime(), nullable=False)
    location = Column(String(255), nullable=False)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=EventStatus.ACTIVE.value)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    organizer = relationship("User", lazy="selectin")

    __table_args__ = (
        # Prevent negative or inflated seat counts at the DB level
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        CheckConstraint("available_seats <= total_seats", name="check_available_lte_total"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        CheckConstraint("status IN ('active', 'cancelled')", name="check_event_status"),
        Index("ix_events_date_status", "date", "status"),
    )

    @property
    def is_sold_out(self) -> bool:
        return self.available_seats == 0

    def has_available_seats(self, requested: int) -> bool:
        return self.available_seats >= requested

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_seats}/{self.total_seats})>"
