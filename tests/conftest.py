"""Shared test fixtures and configuration for Expense Plotter tests."""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from plotter.auth.dependencies import get_current_user
from plotter.database import Base, get_db
from plotter.data.models import (
    EntrySeries,
    EntryType,
    RecurrenceType,
    StartingBalance,
    User,
)

TEST_DATABASE_URL = "sqlite+aiosqlite://"



# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with foreign keys enforced and all tables created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session on the test database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.execute = AsyncMock()
    db.add = lambda obj: None
    return db


# =============================================================================
# Domain objects
# =============================================================================

@pytest_asyncio.fixture
async def user(db) -> User:
    user = User(email="owner@example.com", hashed_password="not-a-real-hash")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(db) -> User:
    user = User(email="someone-else@example.com", hashed_password="not-a-real-hash")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def _add_series(db: AsyncSession, user: User, **fields) -> EntrySeries:
    """Insert a series with sensible defaults for the fields not given."""
    values = {
        "entry_type": EntryType.INCOME,
        "recurrence_type": RecurrenceType.ONE_TIME,
        "title": "Salary",
        "amount": Decimal("100.00"),
        "start_date": date(2025, 1, 1),
    }
    values.update(fields)
    series = EntrySeries(user_id=user.id, **values)
    db.add(series)
    await db.commit()
    await db.refresh(series)
    return series


@pytest.fixture
def make_series(db, user):
    """Factory inserting series for `user`: `await make_series(title=..., ...)`."""
    async def _make(**fields) -> EntrySeries:
        return await _add_series(db, user, **fields)
    return _make


@pytest_asyncio.fixture
async def weekly_income(db, user) -> EntrySeries:
    """Weekly income of 500 starting Wednesday 2025-12-03."""
    return await _add_series(
        db, user,
        recurrence_type=RecurrenceType.WEEKLY,
        title="Freelance",
        amount=Decimal("500.00"),
        start_date=date(2025, 12, 3),
        weekday=3,
    )


@pytest_asyncio.fixture
async def monthly_rent(db, user) -> EntrySeries:
    """Monthly expense of 1200 on the 10th, ongoing."""
    return await _add_series(
        db, user,
        entry_type=EntryType.EXPENSE,
        recurrence_type=RecurrenceType.MONTHLY,
        title="Rent",
        amount=Decimal("1200.00"),
        start_date=date(2025, 1, 10),
        day_of_month=10,
    )


@pytest_asyncio.fixture
async def starting_balance(db, user) -> StartingBalance:
    balance = StartingBalance(user_id=user.id, amount=Decimal("1000.00"), effective_date=date(2025, 1, 1))
    db.add(balance)
    await db.commit()
    await db.refresh(balance)
    return balance


# =============================================================================
# HTTP
# =============================================================================

@pytest_asyncio.fixture
async def client(session_factory, user) -> AsyncGenerator[AsyncClient, None]:
    """API client authenticated as `user`, one session per request."""
    from plotter.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_current_user():
        return user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
