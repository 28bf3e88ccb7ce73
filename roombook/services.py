import logging
from datetime import date as date_type
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import lazyload

from .exceptions import (
    ConflictError,
    InsufficientCapacityError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .models import DAY_TIMES, MAX_SEATS, Booking, CalendarEntry, Room, TimeSlot, utcnow
from .schemas import (
    CalendarByDate,
    CalendarEntryCreate,
    CalendarEntryOut,
    CalendarSummary,
    UserBookingOut,
)

logger = logging.getLogger(__name__)


async def load_entry(calendar_id: UUID, session: AsyncSession) -> CalendarEntry:
    stmt = (
        select(CalendarEntry)
        .where(CalendarEntry.id == calendar_id)
        .execution_options(populate_existing=True)
    )
    entry = (await session.execute(stmt)).scalar_one_or_none()
    if entry is None:
        raise NotFoundError("Calendar entry", calendar_id)
    return entry


async def _find_entry_id(room_id: UUID, time_slot_id: UUID, session: AsyncSession) -> Optional[UUID]:
    stmt = select(CalendarEntry.id).where(
        CalendarEntry.room_id == room_id,
        CalendarEntry.time_slot_id == time_slot_id,
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def create_calendar_entry(req: CalendarEntryCreate, session: AsyncSession) -> CalendarEntry:
    """
    Create a ledger row for a (room, time slot) pair, optionally with a custom
    capacity and seed bookings.
    """
    room = await session.get(Room, req.room_id)
    if room is None:
        raise NotFoundError("Room", req.room_id)

    time_slot = await session.get(TimeSlot, req.time_slot_id)
    if time_slot is None:
        raise NotFoundError("Time slot", req.time_slot_id)

    if await _find_entry_id(room.id, time_slot.id, session) is not None:
        raise ConflictError(
            "Calendar entry already exists for this room and time slot",
            {"room_id": str(room.id), "time_slot_id": str(time_slot.id)},
        )

    total_capacity = req.total_capacity or room.room_capacity
    seeded_seats = sum(b.seats for b in req.booked_by)
    if req.seats_booked is not None and req.seats_booked != seeded_seats:
        raise ValidationError(
            "seatsBooked must equal the sum of seats in bookedBy",
            {"seats_booked": req.seats_booked, "booked_by_seats": seeded_seats},
        )
    if seeded_seats > total_capacity:
        raise InsufficientCapacityError(requested=seeded_seats, available=total_capacity)

    entry = CalendarEntry(
        room_id=room.id,
        time_slot_id=time_slot.id,
        total_capacity=total_capacity,
        seats_booked=seeded_seats,
    )
    entry.booked_by = [Booking(user_id=b.user_id, seats=b.seats) for b in req.booked_by]
    session.add(entry)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(
            "Calendar entry already exists for this room and time slot",
            {"room_id": str(req.room_id), "time_slot_id": str(req.time_slot_id), "error": str(exc.orig)},
        ) from exc

    logger.info(
        "Created calendar entry %s for room %s slot %s (capacity %d, seeded %d)",
        entry.id, room.id, time_slot.id, total_capacity, seeded_seats,
    )
    return await load_entry(entry.id, session)


async def _reject_booking(calendar_id: UUID, seats: int, session: AsyncSession):
    """Raise NotFound or InsufficientCapacity, reporting the seats actually left."""
    entry = await session.get(CalendarEntry, calendar_id, populate_existing=True)
    if entry is None:
        raise NotFoundError("Calendar entry", calendar_id)
    logger.info("Rejected booking of %d seat(s) on %s: %d left", seats, calendar_id, entry.room_available)
    raise InsufficientCapacityError(requested=seats, available=entry.room_available)


async def book_seats(calendar_id: UUID, user_id: UUID, seats: int, session: AsyncSession) -> CalendarEntry:
    """
    Reserve ``seats`` for ``user_id`` on a ledger entry.

    The capacity check and the increment are one conditional UPDATE, so two
    concurrent requests can never both claim the last seats.
    """
    if seats is None or seats < 1:
        raise ValidationError("User ID and number of seats (minimum 1) are required")
    if seats > MAX_SEATS:
        # cannot fit any ledger entry and cannot be bound to the seat columns
        await _reject_booking(calendar_id, seats, session)

    stmt = (
        update(CalendarEntry)
        .where(
            CalendarEntry.id == calendar_id,
            CalendarEntry.seats_booked + seats <= CalendarEntry.total_capacity,
        )
        .values(
            seats_booked=CalendarEntry.seats_booked + seats,
            updated_at=utcnow(),
        )
        .returning(CalendarEntry.seats_booked)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    seats_booked = result.scalar_one_or_none()

    if seats_booked is None:
        await session.rollback()
        await _reject_booking(calendar_id, seats, session)

    session.add(Booking(calendar_entry_id=calendar_id, user_id=user_id, seats=seats))
    await session.commit()

    logger.info("Booked %d seat(s) on %s for user %s (now %d)", seats, calendar_id, user_id, seats_booked)
    return await load_entry(calendar_id, session)


async def _get_or_create_entry(room: Room, time_slot: TimeSlot, session: AsyncSession) -> UUID:
    room_id, time_slot_id = room.id, time_slot.id
    entry_id = await _find_entry_id(room_id, time_slot_id, session)
    if entry_id is not None:
        return entry_id

    entry = CalendarEntry(
        room_id=room_id,
        time_slot_id=time_slot_id,
        total_capacity=room.room_capacity,
        seats_booked=0,
    )
    session.add(entry)
    try:
        await session.commit()
    except IntegrityError:
        # lost a creation race; the winner's row is the one to book against
        await session.rollback()
        entry_id = await _find_entry_id(room_id, time_slot_id, session)
        if entry_id is None:
            raise InternalError("Could not create calendar entry")
        return entry_id

    logger.info("Created calendar entry %s lazily for room %s slot %s", entry.id, room_id, time_slot_id)
    return entry.id


async def book_room_slot(
    room_id: UUID, time_slot_id: UUID, user_id: UUID, seats: int, session: AsyncSession
) -> CalendarEntry:
    """Book against a room/slot pair, creating its ledger entry on first use."""
    if seats is None or seats < 1:
        raise ValidationError("User ID and number of seats (minimum 1) are required")

    room = await session.get(Room, room_id)
    if room is None or not room.is_active:
        raise NotFoundError("Room", room_id, "Room not found or inactive")

    time_slot = await session.get(TimeSlot, time_slot_id)
    if time_slot is None:
        raise NotFoundError("Time slot", time_slot_id)
    if not time_slot.is_active:
        raise ValidationError("Time slot is not active", {"time_slot_id": str(time_slot_id)})
    if all(slot.id != time_slot.id for slot in room.available_time_slots):
        raise ValidationError(
            "Time slot is not offered by this room",
            {"room_id": str(room_id), "time_slot_id": str(time_slot_id)},
        )

    entry_id = await _get_or_create_entry(room, time_slot, session)
    return await book_seats(entry_id, user_id, seats, session)


async def cancel_booking(calendar_id: UUID, booking_id: UUID, session: AsyncSession):
    """
    Remove a booking and give its seats back.

    Returns ``(seats_released, entry)``.
    """
    result = await session.execute(
        delete(Booking)
        .where(Booking.id == booking_id, Booking.calendar_entry_id == calendar_id)
        .returning(Booking.seats)
        .execution_options(synchronize_session=False)
    )
    released = result.scalar_one_or_none()

    if released is None:
        await session.rollback()
        if await session.get(CalendarEntry, calendar_id) is None:
            raise NotFoundError("Calendar entry", calendar_id)
        raise NotFoundError("Booking", booking_id)

    result = await session.execute(
        update(CalendarEntry)
        .where(CalendarEntry.id == calendar_id, CalendarEntry.seats_booked >= released)
        .values(seats_booked=CalendarEntry.seats_booked - released, updated_at=utcnow())
        .returning(CalendarEntry.seats_booked)
        .execution_options(synchronize_session=False)
    )
    if result.scalar_one_or_none() is None:
        # seats_booked no longer matches its bookings; floor at zero
        logger.warning(
            "Ledger drift on calendar entry %s: releasing %d seat(s) would go below zero, clamping",
            calendar_id, released,
        )
        await session.execute(
            update(CalendarEntry)
            .where(CalendarEntry.id == calendar_id)
            .values(seats_booked=0, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    await session.commit()
    logger.info("Cancelled booking %s on %s, released %d seat(s)", booking_id, calendar_id, released)
    return released, await load_entry(calendar_id, session)


async def get_calendar_by_date(
    on_date: Optional[date_type], day_time: Optional[str], session: AsyncSession
) -> CalendarByDate:
    if on_date is None:
        raise ValidationError("Date is required (YYYY-MM-DD format)")

    slot_stmt = select(TimeSlot).where(TimeSlot.date == on_date)
    if day_time:
        slot_stmt = slot_stmt.where(TimeSlot.day_time == day_time)
    time_slots = (await session.execute(slot_stmt)).scalars().all()

    if not time_slots:
        session_hint = f" and session {day_time}" if day_time else ""
        raise NotFoundError("Time slot", message=f"No time slots found for {on_date}{session_hint}")

    entries = (
        await session.execute(
            select(CalendarEntry)
            .where(CalendarEntry.time_slot_id.in_([slot.id for slot in time_slots]))
            .execution_options(populate_existing=True)
        )
    ).scalars().all()

    periods = {slot.day_time for slot in time_slots} | {entry.time_slot.day_time for entry in entries}
    grouped = {period: [] for period in DAY_TIMES if period in periods}
    for entry in sorted(entries, key=lambda e: (e.time_slot.start_time, e.room.room_name)):
        grouped[entry.time_slot.day_time].append(CalendarEntryOut.model_validate(entry))

    summary = CalendarSummary(
        total_entries=len(entries),
        total_booked_seats=sum(entry.seats_booked for entry in entries),
        total_available_seats=sum(entry.room_available for entry in entries),
    )
    return CalendarByDate(date=on_date, day_time=day_time, grouped_entries=grouped, summary=summary)


async def get_user_bookings(user_id: UUID, session: AsyncSession) -> List[UserBookingOut]:
    """
    Every booking made by ``user_id``, with slot and room details and the
    price for the booked seats, earliest slot first.
    """
    stmt = (
        select(Booking, CalendarEntry)
        .join(CalendarEntry, Booking.calendar_entry_id == CalendarEntry.id)
        .join(TimeSlot, CalendarEntry.time_slot_id == TimeSlot.id)
        .where(Booking.user_id == user_id)
        .options(lazyload(CalendarEntry.booked_by))
        .order_by(TimeSlot.date, TimeSlot.start_time, Booking.booking_date)
    )
    rows = (await session.execute(stmt)).all()

    bookings = []
    for booking, entry in rows:
        slot, room = entry.time_slot, entry.room
        bookings.append(
            UserBookingOut(
                booking_id=booking.id,
                calendar_id=entry.id,
                date=slot.date,
                day=slot.day,
                day_time=slot.day_time,
                slot_name=slot.slot_name,
                time_range=slot.time_range,
                room_name=room.room_name,
                seats=booking.seats,
                price_per_session=room.price_per_session,
                total_price=booking.seats * room.price_per_session,
                booking_date=booking.booking_date,
            )
        )
    return bookings
