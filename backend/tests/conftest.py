"""Pytest configuration and fixtures for PatientFlow tests."""

import os

# Point the application at SQLite before any patientflow module reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("LOG_JSON", "false")

from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from patientflow.core.database import create_session_factory
from patientflow.models import Base
from patientflow.schemas.patient import PatientCreate
from patientflow.services.workflow import WorkflowManager


# ============================================================================
# Clock
# ============================================================================

class FakeClock:
    """Deterministic clock; every call advances by ``step``."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 9, 0, 0, tzinfo=timezone.utc))


# ============================================================================
# Database Engine and Session Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file per test, with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'patientflow.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for inspecting what the workflow committed."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def manager(session_factory, clock) -> WorkflowManager:
    return WorkflowManager(session_factory, clock=clock)


# ============================================================================
# Test Data
# ============================================================================

def make_patient(**overrides) -> PatientCreate:
    """Registration form for a test patient."""
    data = {
        "first_name": "Amina",
        "middle_name": "Wanjiru",
        "last_name": "Otieno",
        "national_id": "29384756",
        "date_of_birth": date(1988, 4, 12),
        "gender": "female",
        "blood_type": "O+",
        "phone": "+254712000111",
        "email": "amina@example.com",
        "address": "Kisumu, Oginga Odinga St. 4",
        "emergency_contact_name": "Peter Otieno",
        "emergency_contact_phone": "+254712000222",
        "emergency_contact_relationship": "brother",
    }
    data.update(overrides)
    return PatientCreate(**data)


@pytest.fixture
def patient_data() -> PatientCreate:
    return make_patient()
