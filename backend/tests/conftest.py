"""
Centralized Test Configuration.
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.domain.bookings.availability_service import AvailabilityService
from backend.app.models.enums import UserRole
from backend.app.services.user_service import UserService
from backend.tests.helpers import principal

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    """Session for fixture data and direct service calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing, bound to the per-test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# Users

@pytest.fixture
def make_user(session_factory):
    """
    Factory: await make_user(UserRole.FAN, balance=100).

    Each user is created in a short-lived session and returned detached, so a
    rollback in the session under test never expires it.
    """
    counter = {"n": 0}

    async def _make(role: UserRole = UserRole.FAN, balance: int = None, name: str = None):
        counter["n"] += 1
        email = f"{role.value.lower()}{counter['n']}@example.com"
        async with session_factory() as session:
            return await UserService.create_user(
                session,
                email=email,
                name=name or f"{role.value.title()} {counter['n']}",
                role=role,
                opening_balance=balance
            )

    return _make


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, balance=0, name="Platform")


@pytest.fixture
async def star(make_user):
    return await make_user(UserRole.STAR, balance=0, name="Ada")


@pytest.fixture
async def fan(make_user):
    return await make_user(UserRole.FAN, balance=100)



# Availability

@pytest.fixture
def make_slots(session_factory):
    """
    Factory: await make_slots(star, "10:00-11:00", "11:00-12:00", days_ahead=14).

    Publishes the windows for a future day and returns its slots in start
    order, detached like the users above.
    """
    async def _make(star_user, *windows: str, days_ahead: int = 14):
        async with session_factory() as session:
            _, slots = await AvailabilityService.create(
                session,
                principal(star_user),
                date.today() + timedelta(days=days_ahead),
                list(windows) or ["10:00-11:00"]
            )
            return slots

    return _make


@pytest.fixture
async def slot(make_slots, star):
    """One open 10:00-11:00 slot of `star`."""
    return (await make_slots(star))[0]
