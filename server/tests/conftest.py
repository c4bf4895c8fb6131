"""Test configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from travel_booking.core.database import Base
from travel_booking.core.dependencies import get_db
from travel_booking.core.events import EventBus
from travel_booking.core.security import hash_password
from travel_booking.models import *  # noqa: F403 - Import all models
from travel_booking.models import TravelPackage, User
from travel_booking.services.currency_service import CurrencyRateService

ADMIN_HEADERS = {"X-Admin": "true"}

TEST_RATES = {
    "result": "success",
    "base_code": "USD",
    "conversion_rates": {"USD": 1, "EUR": 0.9, "GBP": 0.8, "JPY": 150.25},
}


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """
    Create a file-backed test database engine.

    Concurrency tests open one session per task, so the database must be
    shared across connections; WAL lets readers proceed while a writer holds
    the lock and the busy timeout makes writers queue instead of failing.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'travel_booking.db'}",
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory matching the application's session settings."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def event_bus():
    """A fresh event bus per test."""
    return EventBus(buffer_size=10)


@pytest.fixture
def currency_handler():
    """Mock exchange-rate API answering with ``TEST_RATES``."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=TEST_RATES)

    return handler


@pytest_asyncio.fixture(scope="function")
async def rate_service(currency_handler):
    """Currency-rate service backed by a mock transport."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(currency_handler)) as client:
        yield CurrencyRateService(client=client, base_url="https://rates.test/v6/latest/USD")


@pytest_asyncio.fixture(scope="function")
async def test_app(session_factory, event_bus, rate_service):
    """Create a test FastAPI application."""
    from fastapi import FastAPI

    from travel_booking.main import register_routes
    from travel_booking.routers.package import get_currency_service

    # Create a simplified test app without lifespan
    app = FastAPI(
        title="Travel Booking API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )
    app.state.event_bus = event_bus
    register_routes(app)

    # One session per request, as in production
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_currency_service] = lambda: rate_service

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_package(session_factory):
    """Factory inserting a travel package directly."""
    counter = {"n": 0}

    async def _make_package(
        availability: int = 10,
        price: str = "100.00",
        title: str | None = None,
        destination: str = "Reykjavik",
        category: str = "Adventure",
    ) -> TravelPackage:
        counter["n"] += 1
        async with session_factory() as session:
            package = TravelPackage(
                title=title or f"Package {counter['n']}",
                description="A test package",
                price=Decimal(price),
                duration="7 days",
                destination=destination,
                category=category,
                availability=availability,
            )
            session.add(package)
            await session.commit()
            await session.refresh(package)
            return package

    return _make_package


@pytest.fixture
def make_user(session_factory):
    """Factory inserting a user directly."""
    counter = {"n": 0}
    password_hash = hash_password("s3cret-pass", rounds=4)

    async def _make_user(username: str | None = None, is_admin: bool = False) -> User:
        counter["n"] += 1
        name = username or f"traveller{counter['n']}"
        async with session_factory() as session:
            user = User(
                username=name,
                email=f"{name}@example.com",
                password_hash=password_hash,
                is_admin=is_admin,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


@pytest.fixture
def sample_package_data():
    """Sample package data for testing."""
    return {
        "title": "Northern Lights Adventure",
        "description": "Experience the magical Aurora Borealis in Iceland",
        "price": "1299.99",
        "duration": "5 days",
        "destination": "Iceland",
        "category": "Adventure",
        "availability": 12,
    }


@pytest.fixture
def sample_register_data():
    """Sample registration data for testing."""
    return {
        "username": "aurora",
        "email": "aurora@example.com",
        "password": "northern-lights",
        "confirm_password": "northern-lights",
    }


@pytest.fixture
def read_availability(session_factory):
    """Read a package's availability through a fresh session."""

    async def _read(package_id) -> int:
        async with session_factory() as session:
            package = await session.get(TravelPackage, package_id)
            return package.availability

    return _read
