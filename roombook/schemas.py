from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, Generic, List, Literal, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import MAX_SEATS

T = TypeVar("T")

RoomStatus = Literal["Upcoming", "Cancelled", "Completed"]
DayTime = Literal["Morning", "Afternoon", "Evening"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T
    message: str = ""


# Time slots

class TimeSlotCreate(CamelModel):
    date: date
    day: Optional[str] = None
    day_time: DayTime
    slot_name: str = Field(min_length=1, max_length=100)
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class TimeSlotUpdate(CamelModel):
    is_active: bool


class TimeSlotOut(CamelModel):
    id: UUID
    date: date
    day: str
    day_time: DayTime
    slot_name: str
    start_time: time
    end_time: time
    time_range: str
    is_active: bool


# Rooms

def _split_amenities(value):
    if value is None:
        return value
    if isinstance(value, str):
        value = value.split(",")
    cleaned = []
    for item in value:
        item = item.strip()
        if item and item not in cleaned:
            cleaned.append(item)
    return cleaned


class RoomCreate(CamelModel):
    room_name: str = Field(min_length=1, max_length=200)
    room_capacity: int = Field(ge=1, le=500)
    room_status: RoomStatus = "Upcoming"
    price_per_session: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    amenities: Union[List[str], str] = Field(default_factory=list)
    available_time_slots: List[UUID] = Field(default_factory=list)

    @field_validator("room_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("roomName must not be blank")
        return value

    @field_validator("amenities", mode="after")
    @classmethod
    def parse_amenities(cls, value):
        return _split_amenities(value)


class RoomUpdate(CamelModel):
    room_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    room_capacity: Optional[int] = Field(default=None, ge=1, le=500)
    room_status: Optional[RoomStatus] = None
    price_per_session: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    amenities: Optional[Union[List[str], str]] = None
    available_time_slots: Optional[List[UUID]] = None

    @field_validator("room_name")
    @classmethod
    def strip_name(cls, value):
        if value is not None:
            value = value.strip()
            if not value:
                raise ValueError("roomName must not be blank")
        return value

    @field_validator("amenities", mode="after")
    @classmethod
    def parse_amenities(cls, value):
        return _split_amenities(value)


class RoomSummary(CamelModel):
    id: UUID
    room_name: str
    room_capacity: int
    room_status: RoomStatus
    price_per_session: float
    amenities: List[str]


class RoomOut(RoomSummary):
    is_active: bool
    available_time_slots: List[TimeSlotOut]
    created_at: Optional[datetime] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class RoomPage(CamelModel):
    rooms: List[RoomOut]
    pagination: Pagination


class SlotAvailabilityOut(CamelModel):
    slot_id: UUID
    date: date
    day: str
    day_time: DayTime
    slot_name: str
    time_range: str
    total_capacity: int
    seats_booked: int
    room_available: int
    is_available: bool


class AvailableRoomOut(RoomSummary):
    time_slots: List[SlotAvailabilityOut]
    has_availability: bool


class AvailableRooms(CamelModel):
    date: date
    day_time: DayTime
    available_rooms: List[AvailableRoomOut]
    total_available_rooms: int


# Calendar / ledger

class SeedBooking(CamelModel):
    user_id: UUID
    seats: int = Field(ge=1, le=MAX_SEATS)


class CalendarEntryCreate(CamelModel):
    room_id: UUID
    time_slot_id: UUID
    total_capacity: Optional[int] = Field(default=None, ge=1, le=MAX_SEATS)
    seats_booked: Optional[int] = Field(default=None, ge=0, le=MAX_SEATS)
    booked_by: List[SeedBooking] = Field(default_factory=list)


class BookSeatsRequest(CamelModel):
    user_id: UUID
    seats: int = Field(ge=1)


class BookSlotRequest(BookSeatsRequest):
    room_id: UUID
    time_slot_id: UUID


class BookingOut(CamelModel):
    id: UUID
    user_id: UUID
    seats: int
    booking_date: datetime


class CalendarEntryOut(CamelModel):
    id: UUID
    room: RoomSummary
    time_slot: TimeSlotOut
    total_capacity: int
    seats_booked: int
    room_available: int
    is_available: bool
    booked_by: List[BookingOut]


class CancelBookingOut(CamelModel):
    seats_released: int
    entry: CalendarEntryOut


class CalendarSummary(CamelModel):
    total_entries: int
    total_booked_seats: int
    total_available_seats: int


class CalendarByDate(CamelModel):
    date: date
    day_time: Optional[DayTime] = None
    grouped_entries: Dict[str, List[CalendarEntryOut]]
    summary: CalendarSummary


class UserBookingOut(CamelModel):
    booking_id: UUID
    calendar_id: UUID
    date: date
    day: str
    day_time: DayTime
    slot_name: str
    time_range: str
    room_name: str
    seats: int
    price_per_session: float
    total_price: float
    booking_date: datetime


class UserBookingList(CamelModel):
    bookings: List[UserBookingOut]
    total_bookings: int
