"""
Booking model representing a customer's reservation of tickets for an event.

Key design decisions:
- Status field allows cancellation without deleting records; cancelled is terminal
- `total_amount` is copied at booking time and never recomputed from the event price
- A customer may hold several bookings for the same event
"""

import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from eventbooking.db.base import Base, TimestampMixin, UTCDateTime, utcnow


MAX_TICKETS_PER_BOOKING = 10


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    number_of_tickets = Column(Integer, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    booking_date = Column(UTCDateTime(), nullable=False, default=utcnow)

    event = relationship("Event", lazy="selectin")
    customer = relationship("User", lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            f"number_of_tickets >= 1 AND number_of_tickets <= {MAX_TICKETS_PER_BOOKING}",
            name="check_booking_ticket_range",
        ),
        CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_booking_status"),
        Index("ix_bookings_customer_status", "customer_id", "status"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, customer={self.customer_id}, event={self.event_id}, status={self.status})>"
