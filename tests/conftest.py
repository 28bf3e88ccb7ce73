import uuid
from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from roombook.config import Settings
from roombook.database import Database
from roombook.main import create_app
from roombook.models import Room, TimeSlot


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'roombook-test.db'}",
        CREATE_TABLES=False,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
async def database(settings):
    db = Database(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session_maker() as session:
        yield session


@pytest.fixture
async def client(settings, database):
    app = create_app(settings, database)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def slot_date() -> date:
    return date.today() + timedelta(days=7)


@pytest.fixture
def make_slot(session, slot_date):
    """Factory persisting a time slot; returns its id."""

    async def _make(
        day_time="Morning",
        slot_name="Slot 1",
        start=time(9, 0),
        end=time(11, 0),
        on_date=None,
        is_active=True,
    ) -> uuid.UUID:
        on_date = on_date or slot_date
        slot = TimeSlot(
            date=on_date,
            day=on_date.strftime("%A"),
            day_time=day_time,
            slot_name=slot_name,
            start_time=start,
            end_time=end,
            is_active=is_active,
        )
        session.add(slot)
        await session.commit()
        return slot.id

    return _make


@pytest.fixture
def make_room(session):
    """Factory persisting a room offering the given slot ids; returns its id."""

    async def _make(capacity=10, slot_ids=(), name="Focus Room", price="150.00", is_active=True) -> uuid.UUID:
        slots = [await session.get(TimeSlot, slot_id) for slot_id in slot_ids]
        room = Room(
            room_name=name,
            room_capacity=capacity,
            room_status="Upcoming",
            price_per_session=Decimal(price),
            amenities=["wifi"],
            is_active=is_active,
        )
        room.available_time_slots = slots
        session.add(room)
        await session.commit()
        return room.id

    return _make


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()
