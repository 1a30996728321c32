# tests/conftest.py
from datetime import date, time

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from inkbook.db.base import Base
from inkbook.db.session import get_db
from inkbook.main import create_app
from inkbook.models.artist import Artist, Location
from inkbook.models.booking import Project, SessionRecord
from inkbook.models.calendar_event import CalendarEventRecord
from inkbook.services.calendar_store import CalendarStore

TEST_DB_URL = "sqlite+aiosqlite://"

DEFAULT_FLOW = {
    "break_time": 15,
    "work_days": ["mon", "tue", "wed", "thu", "fri", "sat", "sun"],
    "start_times": {},
    "end_times": {},
}


@pytest_asyncio.fixture
async def engine():
    """
    Fresh in-memory database per test. StaticPool keeps the single
    connection alive so every session sees the same tables.
    """
    eng = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        class_=AsyncSession,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db) -> CalendarStore:
    return CalendarStore(db)


@pytest_asyncio.fixture
async def artist(db) -> Artist:
    """
    Artist working every day, open-ended hours, 15 minute break, with one
    permanent studio (id 1) and one guest spot ending 2025-03-20 (id 2).
    """
    record = Artist(full_name="Mika Ink", email="mika@example.com", flow=DEFAULT_FLOW)
    db.add(record)
    await db.flush()
    db.add_all(
        [
            Location(
                artist_id=record.id,
                name="Main Studio",
                address="1 Needle Street",
                is_main_studio=True,
            ),
            Location(
                artist_id=record.id,
                name="Guest Spot Berlin",
                is_main_studio=False,
                end_at=date(2025, 3, 20),
            ),
        ]
    )
    await db.commit()
    await db.refresh(record, attribute_names=["locations"])
    return record


@pytest_asyncio.fixture
async def profile(store, artist):
    return await store.load_artist(artist.id)


@pytest.fixture
def add_session(db, artist):
    """
    Insert a committed session (with its project) for the test artist.
    """
    artist_id = artist.id

    async def _add(
        day: date,
        start: time,
        duration: int,
        title: str = "Existing session",
        location_id: int | None = 1,
    ) -> SessionRecord:
        project = Project(artist_id=artist_id, title=title, deposit_amount=0.0)
        record = SessionRecord(
            project=project,
            date=day,
            start_time=start,
            duration=duration,
            location_id=location_id,
        )
        db.add_all([project, record])
        await db.commit()
        return record

    return _add


@pytest.fixture
def add_event(db, artist):
    """
    Insert a stored calendar event for the test artist.
    """
    artist_id = artist.id

    async def _add(**fields) -> CalendarEventRecord:
        fields.setdefault("artist_id", artist_id)
        fields.setdefault("title", "Blocked")
        fields.setdefault("end_date", fields["start_date"])
        record = CalendarEventRecord(**fields)
        db.add(record)
        await db.commit()
        return record

    return _add


@pytest_asyncio.fixture
async def api_client(session_factory):
    """
    HTTP client against the application, with `get_db` bound to the test
    database.
    """
    app = create_app()

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
