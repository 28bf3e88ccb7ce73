"""
Availability resolution.

A room/slot pair either has a ledger row (``Seeded``) or has never been
booked (``DefaultFull``), in which case the whole room capacity is free.
Everything here is a pure function of already-loaded rows.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union
from uuid import UUID

from .models import CalendarEntry, Room, TimeSlot


@dataclass(frozen=True)
class Seeded:
    entry: CalendarEntry


@dataclass(frozen=True)
class DefaultFull:
    room: Room


LedgerState = Union[Seeded, DefaultFull]


@dataclass(frozen=True)
class SlotAvailability:
    total_capacity: int
    seats_booked: int
    room_available: int
    is_available: bool


@dataclass(frozen=True)
class RoomAvailability:
    room: Room
    slots: List[Tuple[TimeSlot, SlotAvailability]]

    @property
    def has_availability(self) -> bool:
        return any(availability.is_available for _, availability in self.slots)


def ledger_state(room: Room, entry: Optional[CalendarEntry]) -> LedgerState:
    if entry is None:
        return DefaultFull(room)
    return Seeded(entry)


def resolve(state: LedgerState) -> SlotAvailability:
    if isinstance(state, Seeded):
        total = state.entry.total_capacity
        booked = state.entry.seats_booked
    else:
        total = state.room.room_capacity
        booked = 0
    remaining = total - booked
    return SlotAvailability(
        total_capacity=total,
        seats_booked=booked,
        room_available=remaining,
        is_available=remaining > 0,
    )


def slot_availability(room: Room, entry: Optional[CalendarEntry] = None) -> SlotAvailability:
    return resolve(ledger_state(room, entry))


def index_entries(entries: Iterable[CalendarEntry]) -> Dict[Tuple[UUID, UUID], CalendarEntry]:
    return {(entry.room_id, entry.time_slot_id): entry for entry in entries}


def resolve_rooms(
    rooms: Iterable[Room],
    slots: Iterable[TimeSlot],
    entries: Mapping[Tuple[UUID, UUID], CalendarEntry],
) -> List[RoomAvailability]:
    """
    Compute per-slot availability for every room over the requested slots.

    Only the room's own offered slots that are part of ``slots`` are considered,
    and a room is kept only when at least one of those slots has a free seat.
    """
    wanted = {slot.id for slot in slots}
    results = []
    for room in rooms:
        per_slot = [
            (slot, slot_availability(room, entries.get((room.id, slot.id))))
            for slot in room.available_time_slots
            if slot.id in wanted
        ]
        availability = RoomAvailability(room=room, slots=per_slot)
        if availability.has_availability:
            results.append(availability)
    return results
