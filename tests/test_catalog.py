import uuid
from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from roombook import catalog, services
from roombook.exceptions import NotFoundError, ValidationError
from roombook.schemas import RoomCreate, RoomUpdate, TimeSlotCreate


async def test_create_time_slot_derives_day(session):
    slot = await catalog.create_time_slot(
        TimeSlotCreate(
            date=date(2030, 1, 7),
            day_time="Afternoon",
            slot_name=" Deep work ",
            start_time=time(13, 0),
            end_time=time(15, 0),
        ),
        session,
    )

    assert slot.day == "Monday"
    assert slot.slot_name == "Deep work"
    assert slot.time_range == "13:00 - 15:00"
    assert slot.is_active


def test_time_slot_must_end_after_start():
    with pytest.raises(ValueError):
        TimeSlotCreate(
            date=date(2030, 1, 7),
            day_time="Morning",
            slot_name="Backwards",
            start_time=time(11, 0),
            end_time=time(9, 0),
        )


async def test_list_and_deactivate_time_slots(session, make_slot, slot_date):
    first = await make_slot(slot_name="First", start=time(8, 0), end=time(9, 0))
    second = await make_slot(slot_name="Second", start=time(10, 0), end=time(11, 0))

    await catalog.set_time_slot_active(second, False, session)

    all_slots = await catalog.list_time_slots(slot_date, None, None, session)
    active = await catalog.list_time_slots(slot_date, "Morning", True, session)
    assert [s.slot_name for s in all_slots] == ["First", "Second"]
    assert [s.id for s in active] == [first]

    with pytest.raises(NotFoundError):
        await catalog.set_time_slot_active(uuid.uuid4(), True, session)


async def test_create_room_parses_amenities_and_links_slots(session, make_slot):
    slot_id = await make_slot()

    room = await catalog.create_room(
        RoomCreate(
            room_name="  Board Room ",
            room_capacity=12,
            price_per_session=Decimal("99.99"),
            amenities="wifi, projector ,wifi,",
            available_time_slots=[slot_id],
        ),
        session,
    )

    assert room.room_name == "Board Room"
    assert room.room_status == "Upcoming"
    assert room.amenities == ["wifi", "projector"]
    assert [s.id for s in room.available_time_slots] == [slot_id]


async def test_create_room_rejects_inactive_slots(session, make_slot):
    slot_id = await make_slot(is_active=False)

    with pytest.raises(ValidationError):
        await catalog.create_room(
            RoomCreate(room_name="Room", room_capacity=5, price_per_session=10, available_time_slots=[slot_id]),
            session,
        )


def test_room_capacity_bounds():
    with pytest.raises(ValueError):
        RoomCreate(room_name="Hall", room_capacity=501, price_per_session=10)
    with pytest.raises(ValueError):
        RoomCreate(room_name="Closet", room_capacity=0, price_per_session=10)


async def test_list_rooms_paginates_active_rooms(session, make_room):
    for i in range(3):
        await make_room(name=f"Room {i}")
    await make_room(name="Retired", is_active=False)

    page = await catalog.list_rooms(page=1, limit=2, session=session)

    assert page.pagination.total == 3
    assert page.pagination.pages == 2
    assert len(page.rooms) == 2


async def test_update_room_keeps_ledger_snapshot(session, make_slot, make_room, user_id):
    slot_id = await make_slot()
    room_id = await make_room(capacity=10, slot_ids=[slot_id])
    entry = await services.book_room_slot(room_id, slot_id, user_id, 2, session)
    calendar_id = entry.id

    room = await catalog.update_room(room_id, RoomUpdate(room_capacity=20, amenities=["coffee"]), session)

    assert room.room_capacity == 20
    assert room.amenities == ["coffee"]
    entry = await services.load_entry(calendar_id, session)
    assert entry.total_capacity == 10


async def test_delete_room_refused_with_upcoming_bookings(session, make_slot, make_room, user_id):
    slot_id = await make_slot()
    room_id = await make_room(slot_ids=[slot_id])
    entry = await services.book_room_slot(room_id, slot_id, user_id, 1, session)
    calendar_id, booking_id = entry.id, entry.booked_by[0].id

    with pytest.raises(ValidationError, match="existing bookings"):
        await catalog.delete_room(room_id, session)

    await services.cancel_booking(calendar_id, booking_id, session)
    await catalog.delete_room(room_id, session)
    with pytest.raises(NotFoundError):
        await catalog.get_room(room_id, session)


async def test_delete_room_ignores_past_bookings(session, make_slot, make_room, user_id):
    past = await make_slot(on_date=date.today() - timedelta(days=3))
    room_id = await make_room(slot_ids=[past])
    await services.book_room_slot(room_id, past, user_id, 1, session)

    await catalog.delete_room(room_id, session)


async def test_available_rooms_reconciles_ledger(session, make_slot, make_room, slot_date, user_id):
    slot_id = await make_slot()
    open_room = await make_room(capacity=4, slot_ids=[slot_id], name="Open")
    full_room = await make_room(capacity=2, slot_ids=[slot_id], name="Full")
    await make_room(capacity=4, slot_ids=[slot_id], name="Gone", is_active=False)
    await services.book_room_slot(full_room, slot_id, user_id, 2, session)
    await services.book_room_slot(open_room, slot_id, user_id, 1, session)

    result = await catalog.get_available_rooms(slot_date, "Morning", session)

    assert result.total_available_rooms == 1
    [room] = result.available_rooms
    assert room.id == open_room
    assert room.time_slots[0].room_available == 3
    assert room.time_slots[0].seats_booked == 1


async def test_available_rooms_for_untouched_slot_report_full_capacity(session, make_slot, make_room, slot_date):
    slot_id = await make_slot()
    await make_room(capacity=7, slot_ids=[slot_id])

    first = await catalog.get_available_rooms(slot_date, "Morning", session)
    second = await catalog.get_available_rooms(slot_date, "Morning", session)

    assert first.available_rooms[0].time_slots[0].room_available == 7
    assert first.available_rooms[0].time_slots[0].is_available
    assert first == second


async def test_available_rooms_needs_active_slots(session, make_slot, slot_date):
    await make_slot(is_active=False)

    with pytest.raises(NotFoundError):
        await catalog.get_available_rooms(slot_date, "Morning", session)
    with pytest.raises(ValidationError):
        await catalog.get_available_rooms(slot_date, None, session)
