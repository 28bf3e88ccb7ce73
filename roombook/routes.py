from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from . import catalog, services
from .database import get_session
from .schemas import (
    ApiResponse,
    AvailableRooms,
    BookSeatsRequest,
    BookSlotRequest,
    CalendarByDate,
    CalendarEntryCreate,
    CalendarEntryOut,
    CancelBookingOut,
    DayTime,
    RoomCreate,
    RoomOut,
    RoomPage,
    RoomUpdate,
    TimeSlotCreate,
    TimeSlotOut,
    TimeSlotUpdate,
    UserBookingList,
)

calendar_router = APIRouter(prefix="/api/calendar", tags=["calendar"])
rooms_router = APIRouter(prefix="/api/rooms", tags=["rooms"])
slots_router = APIRouter(prefix="/api/day-time-slots", tags=["time slots"])


# Calendar

@calendar_router.post("", status_code=201, response_model=ApiResponse[CalendarEntryOut])
async def create_calendar_entry(req: CalendarEntryCreate, session: AsyncSession = Depends(get_session)):
    entry = await services.create_calendar_entry(req, session)
    return ApiResponse(data=CalendarEntryOut.model_validate(entry), message="Calendar entry created successfully")


@calendar_router.get("", response_model=ApiResponse[CalendarByDate])
async def get_calendar_by_date(
    on_date: Optional[date] = Query(None, alias="date"),
    day_time: Optional[DayTime] = Query(None, alias="dayTime"),
    session: AsyncSession = Depends(get_session),
):
    calendar = await services.get_calendar_by_date(on_date, day_time, session)
    session_hint = f" and session {day_time}" if day_time else ""
    return ApiResponse(data=calendar, message=f"Calendar entries for {on_date}{session_hint} retrieved successfully")


@calendar_router.post("/book", response_model=ApiResponse[CalendarEntryOut])
async def book_room_slot(req: BookSlotRequest, session: AsyncSession = Depends(get_session)):
    entry = await services.book_room_slot(req.room_id, req.time_slot_id, req.user_id, req.seats, session)
    return ApiResponse(data=CalendarEntryOut.model_validate(entry), message=f"Successfully booked {req.seats} seat(s)")


@calendar_router.post("/{calendar_id}/book", response_model=ApiResponse[CalendarEntryOut])
async def book_seats(calendar_id: UUID, req: BookSeatsRequest, session: AsyncSession = Depends(get_session)):
    entry = await services.book_seats(calendar_id, req.user_id, req.seats, session)
    return ApiResponse(data=CalendarEntryOut.model_validate(entry), message=f"Successfully booked {req.seats} seat(s)")


@calendar_router.delete("/{calendar_id}/bookings/{booking_id}", response_model=ApiResponse[CancelBookingOut])
async def cancel_booking(calendar_id: UUID, booking_id: UUID, session: AsyncSession = Depends(get_session)):
    released, entry = await services.cancel_booking(calendar_id, booking_id, session)
    return ApiResponse(
        data=CancelBookingOut(seats_released=released, entry=CalendarEntryOut.model_validate(entry)),
        message=f"Successfully cancelled booking and released {released} seat(s)",
    )


@calendar_router.get("/user/{user_id}/bookings", response_model=ApiResponse[UserBookingList])
async def user_bookings(user_id: UUID, session: AsyncSession = Depends(get_session)):
    bookings = await services.get_user_bookings(user_id, session)
    return ApiResponse(
        data=UserBookingList(bookings=bookings, total_bookings=len(bookings)),
        message=f"Retrieved {len(bookings)} bookings for user",
    )


# Rooms

@rooms_router.post("", status_code=201, response_model=ApiResponse[RoomOut])
async def create_room(req: RoomCreate, session: AsyncSession = Depends(get_session)):
    room = await catalog.create_room(req, session)
    return ApiResponse(data=RoomOut.model_validate(room), message="Room created successfully")


@rooms_router.get("", response_model=ApiResponse[RoomPage])
async def list_rooms(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse(data=await catalog.list_rooms(page, limit, session))


@rooms_router.get("/available", response_model=ApiResponse[AvailableRooms])
async def available_rooms(
    on_date: Optional[date] = Query(None, alias="date"),
    day_time: Optional[DayTime] = Query(None, alias="dayTime"),
    session: AsyncSession = Depends(get_session),
):
    result = await catalog.get_available_rooms(on_date, day_time, session)
    return ApiResponse(data=result, message=f"Available rooms for {day_time} on {on_date} retrieved successfully")


@rooms_router.get("/{room_id}", response_model=ApiResponse[RoomOut])
async def get_room(room_id: UUID, session: AsyncSession = Depends(get_session)):
    room = await catalog.get_room(room_id, session)
    return ApiResponse(data=RoomOut.model_validate(room))


@rooms_router.put("/{room_id}", response_model=ApiResponse[RoomOut])
async def update_room(room_id: UUID, req: RoomUpdate, session: AsyncSession = Depends(get_session)):
    room = await catalog.update_room(room_id, req, session)
    return ApiResponse(data=RoomOut.model_validate(room), message="Room updated successfully")


@rooms_router.delete("/{room_id}", response_model=ApiResponse[None])
async def delete_room(room_id: UUID, session: AsyncSession = Depends(get_session)):
    await catalog.delete_room(room_id, session)
    return ApiResponse(data=None, message="Room deleted successfully")


# Time slots

@slots_router.post("", status_code=201, response_model=ApiResponse[TimeSlotOut])
async def create_time_slot(req: TimeSlotCreate, session: AsyncSession = Depends(get_session)):
    slot = await catalog.create_time_slot(req, session)
    return ApiResponse(data=TimeSlotOut.model_validate(slot), message="Time slot created successfully")


@slots_router.get("", response_model=ApiResponse[List[TimeSlotOut]])
async def list_time_slots(
    on_date: Optional[date] = Query(None, alias="date"),
    day_time: Optional[DayTime] = Query(None, alias="dayTime"),
    active: Optional[bool] = Query(None, alias="isActive"),
    session: AsyncSession = Depends(get_session),
):
    slots = await catalog.list_time_slots(on_date, day_time, active, session)
    return ApiResponse(data=[TimeSlotOut.model_validate(slot) for slot in slots])


@slots_router.patch("/{slot_id}", response_model=ApiResponse[TimeSlotOut])
async def update_time_slot(slot_id: UUID, req: TimeSlotUpdate, session: AsyncSession = Depends(get_session)):
    slot = await catalog.set_time_slot_active(slot_id, req.is_active, session)
    state = "activated" if slot.is_active else "deactivated"
    return ApiResponse(data=TimeSlotOut.model_validate(slot), message=f"Time slot {state}")
