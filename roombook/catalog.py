import logging
import math
from datetime import date as date_type
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .availability import index_entries, resolve_rooms
from .exceptions import NotFoundError, ValidationError
from .models import CalendarEntry, Room, TimeSlot, utcnow
from .schemas import (
    AvailableRoomOut,
    AvailableRooms,
    Pagination,
    RoomCreate,
    RoomOut,
    RoomPage,
    RoomUpdate,
    SlotAvailabilityOut,
    TimeSlotCreate,
)

logger = logging.getLogger(__name__)


# Time slots

async def create_time_slot(req: TimeSlotCreate, session: AsyncSession) -> TimeSlot:
    slot = TimeSlot(
        date=req.date,
        day=req.day or req.date.strftime("%A"),
        day_time=req.day_time,
        slot_name=req.slot_name.strip(),
        start_time=req.start_time,
        end_time=req.end_time,
        is_active=True,
    )
    session.add(slot)
    await session.commit()
    logger.info("Created time slot %s (%s %s %s)", slot.id, slot.date, slot.day_time, slot.slot_name)
    return slot


async def list_time_slots(
    on_date: Optional[date_type],
    day_time: Optional[str],
    active: Optional[bool],
    session: AsyncSession,
) -> Sequence[TimeSlot]:
    stmt = select(TimeSlot)
    if on_date is not None:
        stmt = stmt.where(TimeSlot.date == on_date)
    if day_time:
        stmt = stmt.where(TimeSlot.day_time == day_time)
    if active is not None:
        stmt = stmt.where(TimeSlot.is_active.is_(active))
    stmt = stmt.order_by(TimeSlot.date, TimeSlot.start_time)
    return (await session.execute(stmt)).scalars().all()


async def set_time_slot_active(slot_id: UUID, is_active: bool, session: AsyncSession) -> TimeSlot:
    slot = await session.get(TimeSlot, slot_id)
    if slot is None:
        raise NotFoundError("Time slot", slot_id)
    slot.is_active = is_active
    await session.commit()
    return slot


async def _active_time_slots(slot_ids: List[UUID], session: AsyncSession) -> List[TimeSlot]:
    if not slot_ids:
        return []
    unique_ids = list(dict.fromkeys(slot_ids))
    stmt = select(TimeSlot).where(TimeSlot.id.in_(unique_ids), TimeSlot.is_active.is_(True))
    slots = (await session.execute(stmt)).scalars().all()
    if len(slots) != len(unique_ids):
        raise ValidationError(
            "One or more time slots not found or inactive",
            {"requested": [str(i) for i in unique_ids], "found": [str(s.id) for s in slots]},
        )
    return list(slots)


# Rooms

async def create_room(req: RoomCreate, session: AsyncSession) -> Room:
    slots = await _active_time_slots(req.available_time_slots, session)
    room = Room(
        room_name=req.room_name,
        room_capacity=req.room_capacity,
        room_status=req.room_status,
        price_per_session=req.price_per_session,
        amenities=req.amenities,
        is_active=True,
    )
    room.available_time_slots = slots
    session.add(room)
    await session.commit()
    logger.info("Created room %s (%s, capacity %d)", room.id, room.room_name, room.room_capacity)
    return await get_room(room.id, session)


async def list_rooms(page: int, limit: int, session: AsyncSession) -> RoomPage:
    total = (
        await session.execute(select(func.count()).select_from(Room).where(Room.is_active.is_(True)))
    ).scalar_one()
    stmt = (
        select(Room)
        .where(Room.is_active.is_(True))
        .order_by(Room.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rooms = (await session.execute(stmt)).scalars().all()
    return RoomPage(
        rooms=[RoomOut.model_validate(room) for room in rooms],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


async def get_room(room_id: UUID, session: AsyncSession) -> Room:
    stmt = (
        select(Room)
        .where(Room.id == room_id, Room.is_active.is_(True))
        .execution_options(populate_existing=True)
    )
    room = (await session.execute(stmt)).scalar_one_or_none()
    if room is None:
        raise NotFoundError("Room", room_id, "Room not found or inactive")
    return room


async def update_room(room_id: UUID, req: RoomUpdate, session: AsyncSession) -> Room:
    """
    Partial update. Capacity changes apply to slots without a ledger entry
    only; existing entries keep their capacity snapshot.
    """
    room = await get_room(room_id, session)
    changes = req.model_dump(exclude_unset=True, exclude_none=True)

    if "available_time_slots" in changes:
        room.available_time_slots = await _active_time_slots(req.available_time_slots, session)
        del changes["available_time_slots"]
    for field, value in changes.items():
        setattr(room, field, value)

    await session.commit()
    logger.info("Updated room %s: %s", room.id, sorted(req.model_fields_set))
    return await get_room(room.id, session)


async def delete_room(room_id: UUID, session: AsyncSession) -> None:
    """Soft delete; refused while the room still holds seats on a current or future slot."""
    room = await get_room(room_id, session)

    stmt = (
        select(func.count())
        .select_from(CalendarEntry)
        .join(TimeSlot, CalendarEntry.time_slot_id == TimeSlot.id)
        .where(
            CalendarEntry.room_id == room.id,
            CalendarEntry.seats_booked > 0,
            TimeSlot.date >= utcnow().date(),
        )
    )
    if (await session.execute(stmt)).scalar_one() > 0:
        raise ValidationError("Cannot delete room with existing bookings. Cancel all bookings first.")

    room.is_active = False
    await session.commit()
    logger.info("Soft-deleted room %s", room.id)


async def get_available_rooms(
    on_date: Optional[date_type], day_time: Optional[str], session: AsyncSession
) -> AvailableRooms:
    """Active rooms with at least one free seat in the given session of a day."""
    if on_date is None or not day_time:
        raise ValidationError("Date and dayTime are required parameters")

    slot_stmt = select(TimeSlot).where(
        TimeSlot.date == on_date,
        TimeSlot.day_time == day_time,
        TimeSlot.is_active.is_(True),
    )
    time_slots = (await session.execute(slot_stmt)).scalars().all()
    if not time_slots:
        raise NotFoundError("Time slot", message=f"No active time slots found for {day_time} on {on_date}")
    slot_ids = [slot.id for slot in time_slots]

    rooms = (
        await session.execute(
            select(Room)
            .where(Room.is_active.is_(True), Room.available_time_slots.any(TimeSlot.id.in_(slot_ids)))
            .order_by(Room.room_name)
        )
    ).scalars().all()
    entries = (
        await session.execute(select(CalendarEntry).where(CalendarEntry.time_slot_id.in_(slot_ids)))
    ).scalars().all()

    available = []
    for result in resolve_rooms(rooms, time_slots, index_entries(entries)):
        room = result.room
        available.append(
            AvailableRoomOut(
                id=room.id,
                room_name=room.room_name,
                room_capacity=room.room_capacity,
                room_status=room.room_status,
                price_per_session=room.price_per_session,
                amenities=room.amenities,
                has_availability=result.has_availability,
                time_slots=[
                    SlotAvailabilityOut(
                        slot_id=slot.id,
                        date=slot.date,
                        day=slot.day,
                        day_time=slot.day_time,
                        slot_name=slot.slot_name,
                        time_range=slot.time_range,
                        total_capacity=slot_availability.total_capacity,
                        seats_booked=slot_availability.seats_booked,
                        room_available=slot_availability.room_available,
                        is_available=slot_availability.is_available,
                    )
                    for slot, slot_availability in result.slots
                ],
            )
        )
    return AvailableRooms(
        date=on_date,
        day_time=day_time,
        available_rooms=available,
        total_available_rooms=len(available),
    )
