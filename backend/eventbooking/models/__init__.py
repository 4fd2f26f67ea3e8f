from eventbooking.models.user import User, UserRole
from eventbooking.models.event import Event, EventStatus
from eventbooking.models.booking import Booking, BookingStatus

__all__ = ["User", "UserRole", "Event", "EventStatus", "Booking", "BookingStatus"]
