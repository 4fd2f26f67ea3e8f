"""
Shared helpers for seeding users and events and building auth headers.
"""

from datetime import datetime, timezone, timedelta
from decimal import Decimal

from eventbooking.core.security import create_access_token
from eventbooking.models.event import Event
from eventbooking.models.user import User, UserRole


async def create_user(session_factory, name: str, email: str, role: UserRole) -> User:
    async with session_factory() as session:
        user = User(name=name, email=email, role=role.value)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def create_event(session_factory, organizer: User, **overrides) -> Event:
    fields = {
        "title": "Test Concert",
        "description": "An evening of test music",
        "date": datetime.now(timezone.utc) + timedelta(days=30),
        "location": "Test Venue",
        "total_seats": 10,
        "price": Decimal("20.00"),
        "status": "active",
    }
    fields.update(overrides)
    fields.setdefault("available_seats", fields["total_seats"])
    async with session_factory() as session:
        event = Event(organizer_id=organizer.id, **fields)
        session.add(event)
        await session.commit()
        await session.refresh(event)
        return event


async def seats_left(session_factory, event_id: int) -> int:
    async with session_factory() as session:
        event = await session.get(Event, event_id)
        return event.available_seats


def auth_headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}
