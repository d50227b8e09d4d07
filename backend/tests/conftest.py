import os
import tempfile
from datetime import date, time
from pathlib import Path
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from sqlmodel import SQLModel

TEST_DB = Path(tempfile.gettempdir()) / "kickoff_test.sqlite3"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB}"
os.environ["SECRET_KEY"] = "kickoff-test-secret"
os.environ["LOCK_TIMEOUT_MS"] = "2000"

from kickoff import models  # noqa: E402,F401
from kickoff.database import async_session_factory, engine  # noqa: E402
from kickoff.main import app  # noqa: E402
from kickoff.models import AvailabilitySlot, FootballField, Tournament, User  # noqa: E402
from kickoff.security import create_access_token, get_password_hash  # noqa: E402

PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)


async def _persist(row):
    # Rows are committed in their own session so later rollbacks elsewhere
    # never expire them.
    async with async_session_factory() as own_session:
        own_session.add(row)
        await own_session.commit()
    return row


@pytest_asyncio.fixture(autouse=True)
async def _reset_db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session():
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def make_user():
    async def _make(
        name: str = "Player",
        *,
        is_admin: bool = False,
        email: str | None = None,
        birthdate: date | None = None,
    ) -> User:
        user = User(
            name=name,
            email=email or f"{uuid4().hex[:10]}@example.com",
            phone_number="0100000000",
            birthdate=birthdate,
            hashed_password=PASSWORD_HASH,
            is_admin=is_admin,
        )
        return await _persist(user)

    return _make


@pytest.fixture
def make_field():
    async def _make(name: str = "Central Pitch", price_per_hour: float = 300.0) -> FootballField:
        field = FootballField(name=name, location="Downtown", price_per_hour=price_per_hour)
        return await _persist(field)

    return _make


@pytest.fixture
def make_slot():
    async def _make(
        field: FootballField,
        slot_date: date = date(2025, 2, 15),
        start: time = time(18, 0),
        end: time = time(19, 0),
    ) -> AvailabilitySlot:
        slot = AvailabilitySlot(field_id=field.id, slot_date=slot_date, start_time=start, end_time=end)
        return await _persist(slot)

    return _make


@pytest.fixture
def make_tournament():
    async def _make(field: FootballField, name: str = "Winter Cup") -> Tournament:
        tournament = Tournament(name=name, field_id=field.id, tournament_date=date(2025, 3, 1), prize="Trophy")
        return await _persist(tournament)

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token, _ = create_access_token(user.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
