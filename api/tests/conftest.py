"""Shared test fixtures.

Tests run against a throwaway SQLite file. The URL has to be in the
environment before anything imports app.core, since the engine is built at
import time.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="courtslot-tests-")
os.environ["CS_DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"

from datetime import date, datetime, timedelta  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.auth import create_access_token  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.database import async_session_factory, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import AvailabilityRule, Base, Court, Facility  # noqa: E402

OWNER_ID = 1
PLAYER_ID = 2
OTHER_PLAYER_ID = 3

OPEN = 540  # 09:00
CLOSE = 1080  # 18:00


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user_id))}"}


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.timezone)).date()


def upcoming(weekday: int) -> date:
    """The next date (tomorrow or later) falling on `weekday`, 0=Mon."""
    day = local_today() + timedelta(days=1)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


@pytest.fixture(autouse=True)
async def _database():
    """Fresh schema for every test.

    The global engine is created at import time. pytest-asyncio runs each
    test on a new event loop, so pooled connections from the previous loop
    are disposed first.
    """
    await engine.dispose()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db():
    async with async_session_factory() as session:
        yield session


@pytest.fixture
async def court_data():
    """One facility owned by OWNER_ID with one court open 09:00-18:00 every day."""
    async with async_session_factory() as session:
        facility = Facility(name="Test Padel Club", owner_id=OWNER_ID)
        session.add(facility)
        await session.flush()

        court = Court(facility_id=facility.id, name="Court 1")
        session.add(court)
        await session.flush()

        session.add_all(
            AvailabilityRule(court_id=court.id, day_of_week=day, start_time=OPEN, end_time=CLOSE) for day in range(7)
        )
        await session.commit()
        return {"facility_id": facility.id, "court_id": court.id}
