"""
Tests for event endpoints: CRUD, update notifications and delete rules.
"""

from datetime import datetime, timezone, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from eventbooking.core.exceptions import EventHasBookings
from eventbooking.jobs.queue import JobKind, JobStatus
from eventbooking.models.booking import Booking
from eventbooking.models.event import Event
from eventbooking.services import event_service
from eventbooking.services.seat_ledger import SeatLedger
from tests.utils import auth_headers_for, create_event, seats_left


def event_payload(**overrides) -> dict:
    payload = {
        "title": "Summer Festival",
        "description": "Three stages of open air music",
        "date": (datetime.now(timezone.utc) + timedelta(days=60)).isoformat(),
        "location": "City Park",
        "total_seats": 500,
        "price": "35.50",
    }
    payload.update(overrides)
    return payload


async def book(client: AsyncClient, headers: dict, event_id: int, tickets: int) -> int:
    response = await client.post(
        "/api/v1/bookings/",
        json={"event_id": event_id, "number_of_tickets": tickets},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, organizer_headers, organizer):
    """Organizer can create an event; all seats start available."""
    response = await client.post("/api/v1/events/", json=event_payload(), headers=organizer_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Summer Festival"
    assert data["total_seats"] == 500
    assert data["available_seats"] == 500
    assert data["status"] == "active"
    assert data["is_sold_out"] is False
    assert Decimal(data["price"]) == Decimal("35.50")
    assert data["organizer_id"] == organizer.id
    assert data["organizer"]["name"] == "Olivia Organizer"


@pytest.mark.asyncio
async def test_create_event_in_past(client: AsyncClient, organizer_headers):
    """Creating an event in the past returns 400."""
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    response = await client.post("/api/v1/events/", json=event_payload(date=past), headers=organizer_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


@pytest.mark.asyncio
async def test_create_event_invalid_payload(client: AsyncClient, organizer_headers):
    """Invalid event payload returns 400."""
    response = await client.post(
        "/api/v1/events/", json=event_payload(total_seats=0), headers=organizer_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_customer_cannot_create_event(client: AsyncClient, customer_headers):
    """Customers get 403 when creating events."""
    response = await client.post("/api/v1/events/", json=event_payload(), headers=customer_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient):
    """Unauthenticated event creation returns 401."""
    response = await client.post("/api/v1/events/", json=event_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_events(client: AsyncClient, test_event, past_event, session_factory, organizer):
    """Upcoming events only by default, soonest first."""
    later = await create_event(
        session_factory, organizer, title="Later Show",
        date=datetime.now(timezone.utc) + timedelta(days=90),
    )

    response = await client.get("/api/v1/events/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["cached"] is False
    assert [e["id"] for e in data["events"]] == [test_event.id, later.id]

    response = await client.get("/api/v1/events/", params={"upcoming_only": False})
    assert response.json()["total"] == 3


@pytest.mark.asyncio
async def test_list_events_filter_status(client: AsyncClient, test_event, session_factory, organizer):
    """Status filter restricts the listing."""
    cancelled = await create_event(session_factory, organizer, title="Called Off", status="cancelled")

    response = await client.get("/api/v1/events/", params={"status": "cancelled"})
    assert [e["id"] for e in response.json()["events"]] == [cancelled.id]

    response = await client.get("/api/v1/events/", params={"status": "active"})
    assert [e["id"] for e in response.json()["events"]] == [test_event.id]


@pytest.mark.asyncio
async def test_list_events_pagination(client: AsyncClient, session_factory, organizer):
    """Pages are sized and counted correctly."""
    for day in range(1, 6):
        await create_event(
            session_factory, organizer, title=f"Show {day}",
            date=datetime.now(timezone.utc) + timedelta(days=day),
        )

    response = await client.get("/api/v1/events/", params={"page": 2, "page_size": 2})
    data = response.json()
    assert data["total"] == 5
    assert data["page"] == 2
    assert [e["title"] for e in data["events"]] == ["Show 3", "Show 4"]


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, test_event):
    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    assert response.json()["title"] == "Test Concert"


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    """Missing event returns 404."""
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "not_found", "detail": "Event 99999 not found"}


@pytest.mark.asyncio
async def test_update_notifies_confirmed_customers(
    client: AsyncClient, customer, other_customer, organizer_headers, test_event, job_queue, transport
):
    """An update queues one notice naming every confirmed customer."""
    alice = auth_headers_for(customer)
    await book(client, alice, test_event.id, 2)
    await book(client, alice, test_event.id, 1)
    dropped = await book(client, auth_headers_for(other_customer), test_event.id, 1)
    await client.delete(f"/api/v1/bookings/{dropped}", headers=auth_headers_for(other_customer))
    await job_queue.join()
    transport.clear()

    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"location": "New Arena", "title": "Test Concert"},
        headers=organizer_headers,
    )
    assert response.status_code == 200
    assert response.json()["location"] == "New Arena"

    await job_queue.join()
    [job] = job_queue.jobs_of_kind(JobKind.EVENT_UPDATE_NOTIFICATION)
    assert job.status is JobStatus.COMPLETED
    assert job.payload["updated_fields"] == ["location"]
    assert job.payload["customers"] == [{"name": "Alice Customer", "email": "alice@example.com"}]

    [notice] = transport.delivered
    assert notice.subject == "Event Update - Test Concert"
    assert notice.recipients == ("alice@example.com",)
    assert "Updated Fields: location" in notice.body


@pytest.mark.asyncio
async def test_update_with_identical_values_is_silent(client: AsyncClient, customer_headers, organizer_headers, test_event, job_queue):
    """Re-sending current values queues nothing."""
    await book(client, customer_headers, test_event.id, 1)

    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"title": "Test Concert", "location": "Test Venue", "price": "20.00"},
        headers=organizer_headers,
    )
    assert response.status_code == 200
    await job_queue.join()
    assert job_queue.jobs_of_kind(JobKind.EVENT_UPDATE_NOTIFICATION) == []


@pytest.mark.asyncio
async def test_update_without_bookings_queues_nothing(client: AsyncClient, organizer_headers, test_event, job_queue):
    """Updates to an event nobody booked queue nothing."""
    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"title": "Renamed Concert"}, headers=organizer_headers
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed Concert"
    assert len(job_queue.history) == 0


@pytest.mark.asyncio
async def test_update_ignores_seat_fields(client: AsyncClient, organizer_headers, test_event, session_factory):
    """Seat counts cannot be changed through an update."""
    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"total_seats": 999, "available_seats": 999, "location": "Moved"},
        headers=organizer_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_seats"] == 10
    assert data["available_seats"] == 10
    assert data["location"] == "Moved"
    assert await seats_left(session_factory, test_event.id) == 10


@pytest.mark.asyncio
async def test_update_date_into_past(client: AsyncClient, organizer_headers, test_event):
    """Moving an event into the past returns 400."""
    past = (datetime.now(timezone.utc) - timedelta(days=3)).isoformat()
    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"date": past}, headers=organizer_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_other_organizers_event(client: AsyncClient, other_organizer, test_event):
    """Updating another organizer's event returns 403."""
    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"title": "Hijacked"},
        headers=auth_headers_for(other_organizer),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Not authorized to update this event"


@pytest.mark.asyncio
async def test_delete_event(client: AsyncClient, organizer_headers, test_event):
    """Deleting an unbooked event removes it."""
    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=organizer_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Event deleted successfully", "event_id": test_event.id}

    assert (await client.get(f"/api/v1/events/{test_event.id}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_event_with_bookings(client: AsyncClient, customer_headers, organizer_headers, test_event):
    """Events with confirmed bookings cannot be deleted."""
    await book(client, customer_headers, test_event.id, 2)

    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=organizer_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "event_has_bookings"
    assert response.json()["detail"] == (
        "Cannot delete event with 1 active booking(s). Cancel the event instead."
    )


@pytest.mark.asyncio
async def test_delete_event_with_only_cancelled_bookings(client: AsyncClient, customer_headers, organizer_headers, test_event):
    """Cancelled bookings do not block deletion."""
    booking_id = await book(client, customer_headers, test_event.id, 2)
    await client.delete(f"/api/v1/bookings/{booking_id}", headers=customer_headers)

    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=organizer_headers)
    assert response.status_code == 200

    my_bookings = await client.get("/api/v1/bookings/my", headers=customer_headers)
    assert my_bookings.json() == []


@pytest.mark.asyncio
async def test_delete_other_organizers_event(client: AsyncClient, other_organizer, test_event):
    """Deleting another organizer's event returns 403."""
    response = await client.delete(
        f"/api/v1/events/{test_event.id}", headers=auth_headers_for(other_organizer)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_event_service_strips_protected_fields(db_session, job_queue, organizer, test_event):
    """Ownership and seat fields are dropped before the diff."""
    event = await event_service.update_event(
        db_session,
        job_queue,
        test_event.id,
        organizer,
        {"organizer_id": 12345, "total_seats": 1, "available_seats": 1, "description": "A brand new description"},
    )
    assert event.organizer_id == organizer.id
    assert event.total_seats == 10
    assert event.available_seats == 10
    assert event.description == "A brand new description"


@pytest.mark.asyncio
async def test_confirmed_customers_are_distinct(db_session, ledger, customer, other_customer, test_event):
    """A customer with several bookings is notified once."""
    await ledger.create_booking(db_session, test_event.id, customer.id, 1)
    await ledger.create_booking(db_session, test_event.id, other_customer.id, 1)
    await ledger.create_booking(db_session, test_event.id, customer.id, 1)

    customers = await event_service.confirmed_customers(db_session, test_event.id)
    assert customers == [
        {"name": "Alice Customer", "email": "alice@example.com"},
        {"name": "Bob Customer", "email": "bob@example.com"},
    ]


@pytest.mark.asyncio
async def test_delete_aborts_when_another_process_books(
    db_session, ledger, customer, organizer, test_event, session_factory, monkeypatch
):
    """A booking committed elsewhere between the check and the delete keeps the event alive."""
    other_process = SeatLedger()
    count_bookings = event_service.confirmed_booking_count

    async def count_then_book_elsewhere(db, event_id):
        count = await count_bookings(db, event_id)
        async with session_factory() as session:
            await other_process.create_booking(session, event_id, customer.id, 2)
        return count

    monkeypatch.setattr(event_service, "confirmed_booking_count", count_then_book_elsewhere)

    with pytest.raises(EventHasBookings):
        await event_service.delete_event(db_session, ledger, test_event.id, organizer)

    async with session_factory() as session:
        assert await session.get(Event, test_event.id) is not None
        confirmed = await event_service.confirmed_customers(session, test_event.id)
    assert confirmed == [{"name": "Alice Customer", "email": "alice@example.com"}]
    assert await seats_left(session_factory, test_event.id) == 8


@pytest.mark.asyncio
async def test_delete_removes_cancelled_bookings_with_event(db_session, ledger, customer, organizer, test_event, session_factory):
    """Cancelled bookings go with the event; the event row is gone afterwards."""
    booking = await ledger.create_booking(db_session, test_event.id, customer.id, 2)
    await ledger.cancel_booking(db_session, booking.id, customer.id)

    await event_service.delete_event(db_session, ledger, test_event.id, organizer)

    async with session_factory() as session:
        assert await session.get(Event, test_event.id) is None
        assert await session.get(Booking, booking.id) is None
