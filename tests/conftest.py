"""
Shared test fixtures.

Each test gets a fresh SQLite database with every table created from the
model metadata.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import valleywx.models  # noqa: F401
from valleywx.database import Base
from valleywx.models.forecast import Forecast
from valleywx.models.observation import QC_VALID, Observation
from valleywx.models.station import Station


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test_valleywx.db"

# Create async engine for testing
engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)
TestingSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture
async def db():
    """Create test database."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


async def add_station(db, code, tier="valley_floor", elevation=386.0, is_primary=False, active=True):
    """Insert a station and return it."""
    station = Station(
        code=code,
        name=code.title(),
        latitude=-36.794,
        longitude=146.977,
        elevation=elevation,
        elevation_tier=tier,
        is_primary=is_primary,
        active=active,
    )
    db.add(station)
    await db.commit()
    await db.refresh(station)
    return station


async def add_observation(db, station_id, observed_at, temperature, qc_status=QC_VALID, **fields):
    """Insert an observation at an aware datetime."""
    obs = Observation(
        station_id=station_id,
        observed_at=observed_at.astimezone(timezone.utc),
        temperature=temperature,
        qc_status=qc_status,
        **fields,
    )
    db.add(obs)
    await db.commit()
    return obs


async def add_forecast(db, source, valid_date, temp_max, temp_min, day_of_forecast=1, fetched_at=None, **fields):
    """Insert a provider forecast."""
    fc = Forecast(
        source=source,
        fetched_at=fetched_at or datetime(2026, 1, 1, tzinfo=timezone.utc),
        valid_date=valid_date,
        day_of_forecast=day_of_forecast,
        temp_max=temp_max,
        temp_min=temp_min,
        **fields,
    )
    db.add(fc)
    await db.commit()
    await db.refresh(fc)
    return fc
