"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from freight_backend.app.main import app
from freight_backend.app.core.config import settings
from freight_backend.app.core.dependencies import get_reconciliation_debounce
from freight_backend.app.db.session import get_db, get_session_factory, Base
from freight_backend.app.domain.rating.lookups import LookupBreakers
from freight_backend.app.services.freight_sessions import FreightSessionRegistry
from freight_backend.app.models.price_table import PriceTable
from freight_backend.app.models.client import Client
from freight_backend.app.models.city import City

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Apply overrides once for the session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_reconciliation_debounce] = lambda: 0.0
    yield

    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
def fresh_app_state():
    """Circuit breakers and open sessions must not leak between tests."""
    app.state.lookup_breakers = LookupBreakers.from_settings(settings)
    app.state.freight_sessions = FreightSessionRegistry(ttl_seconds=settings.freight_session_ttl_seconds)
    yield


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    return TestingSessionLocal


# Pricing data

@pytest.fixture
async def price_table(db_session):
    """Nested table matching the worked examples (base 36.00, excess 0.55/kg)."""
    table = PriceTable(
        name="Contrato Teste",
        minimum_rate={"standard": 36.0, "emergency": 55.0, "doorToDoorInterior": 200.0},
        excess_weight={"standard": 0.55, "biological": 0.75},
        door_to_door={"ratePerKm": 2.40, "maxWeight": 100},
        insurance={"standardRate": 0.01},
    )
    db_session.add(table)
    await db_session.commit()
    await db_session.refresh(table)
    return table


@pytest.fixture
async def rated_client(db_session, price_table):
    """Client with the test price table assigned."""
    client = Client(name="Laboratório Teste", price_table_id=price_table.id)
    db_session.add(client)
    await db_session.commit()
    await db_session.refresh(client)
    return client


@pytest.fixture
async def unrated_client(db_session):
    """Client without a price table."""
    client = Client(name="Cliente Avulso", price_table_id=None)
    db_session.add(client)
    await db_session.commit()
    await db_session.refresh(client)
    return client


@pytest.fixture
async def interior_city(db_session):
    city = City(name="Maranguape", state="CE", distance_km=20.0)
    db_session.add(city)
    await db_session.commit()
    await db_session.refresh(city)
    return city
