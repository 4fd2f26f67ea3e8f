"""
Pytest fixtures for test database, client, job queue and authentication.

Each test gets its own SQLite database file (aiosqlite) so tests are isolated
and need no running PostgreSQL or Redis. The HTTP client overrides the
session, job queue and seat ledger dependencies with test instances.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_ENABLED"] = "false"
os.environ["JOB_PROCESSING_DELAY"] = "0"
os.environ["NOTIFICATION_TRANSPORT"] = "memory"

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from eventbooking.main import app
from eventbooking.api.deps import get_job_queue, get_seat_ledger
from eventbooking.db.base import Base
from eventbooking.db.session import get_db
from eventbooking.jobs.queue import JobQueue
from eventbooking.models.event import Event
from eventbooking.models.user import User, UserRole
from eventbooking.services.interfaces.log_transport import MemoryTransport
from eventbooking.services.notification_service import NotificationDispatcher
from eventbooking.services.seat_ledger import SeatLedger
from tests.utils import auth_headers_for, create_event, create_user


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh database file, yield a session factory, dispose."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def transport() -> MemoryTransport:
    return MemoryTransport()


@pytest_asyncio.fixture
async def job_queue(transport) -> AsyncGenerator[JobQueue, None]:
    queue = JobQueue(NotificationDispatcher(transport))
    yield queue
    await queue.stop()


@pytest.fixture
def ledger() -> SeatLedger:
    return SeatLedger()


@pytest_asyncio.fixture
async def client(session_factory, job_queue, ledger) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh session per request and the test queue/ledger."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    app.dependency_overrides[get_seat_ledger] = lambda: ledger

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def customer(session_factory) -> User:
    return await create_user(session_factory, "Alice Customer", "alice@example.com", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def other_customer(session_factory) -> User:
    return await create_user(session_factory, "Bob Customer", "bob@example.com", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def organizer(session_factory) -> User:
    return await create_user(session_factory, "Olivia Organizer", "olivia@example.com", UserRole.ORGANIZER)


@pytest_asyncio.fixture
async def other_organizer(session_factory) -> User:
    return await create_user(session_factory, "Oscar Organizer", "oscar@example.com", UserRole.ORGANIZER)


@pytest.fixture
def customer_headers(customer) -> dict:
    return auth_headers_for(customer)


@pytest.fixture
def organizer_headers(organizer) -> dict:
    return auth_headers_for(organizer)


@pytest_asyncio.fixture
async def test_event(session_factory, organizer) -> Event:
    """10 seats at 20.00 each, a month from now."""
    return await create_event(session_factory, organizer)


@pytest_asyncio.fixture
async def past_event(session_factory, organizer) -> Event:
    return await create_event(
        session_factory,
        organizer,
        title="Yesterday's Show",
        date=datetime.now(timezone.utc) - timedelta(days=1),
    )


@pytest_asyncio.fixture
async def sold_out_event(session_factory, organizer) -> Event:
    return await create_event(session_factory, organizer, title="Sold Out Show", available_seats=0)
