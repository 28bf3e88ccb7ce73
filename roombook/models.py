import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ROOM_STATUSES = ("Upcoming", "Cancelled", "Completed")
DAY_TIMES = ("Morning", "Afternoon", "Evening")

# upper bound of the 32-bit integer seat columns
MAX_SEATS = 2**31 - 1


def utcnow():
    return datetime.now(timezone.utc)


room_time_slots = sa.Table(
    "room_time_slots",
    Base.metadata,
    sa.Column("room_id", sa.Uuid, sa.ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True),
    sa.Column("time_slot_id", sa.Uuid, sa.ForeignKey("time_slots.id", ondelete="CASCADE"), primary_key=True),
)


class TimeSlot(Base):
    __tablename__ = "time_slots"
    __table_args__ = (
        sa.CheckConstraint("end_time > start_time", name="ck_time_slot_range"),
    )

    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    date = sa.Column(sa.Date, nullable=False, index=True)
    day = sa.Column(sa.String(16), nullable=False)
    day_time = sa.Column(sa.Enum(*DAY_TIMES, name="day_time", native_enum=False), nullable=False, index=True)
    slot_name = sa.Column(sa.String(100), nullable=False)
    start_time = sa.Column(sa.Time, nullable=False)
    end_time = sa.Column(sa.Time, nullable=False)
    is_active = sa.Column(sa.Boolean, nullable=False, default=True)
    created_at = sa.Column(sa.DateTime(timezone=True), default=utcnow)

    @property
    def time_range(self) -> str:
        return f"{self.start_time:%H:%M} - {self.end_time:%H:%M}"


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        sa.CheckConstraint("room_capacity BETWEEN 1 AND 500", name="ck_room_capacity"),
        sa.CheckConstraint("price_per_session >= 0", name="ck_room_price"),
    )

    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    room_name = sa.Column(sa.String(200), nullable=False)
    room_capacity = sa.Column(sa.Integer, nullable=False)
    room_status = sa.Column(
        sa.Enum(*ROOM_STATUSES, name="room_status", native_enum=False),
        nullable=False,
        default="Upcoming",
    )
    price_per_session = sa.Column(sa.Numeric(10, 2), nullable=False)
    amenities = sa.Column(sa.JSON, nullable=False, default=list)
    is_active = sa.Column(sa.Boolean, nullable=False, default=True, index=True)
    created_at = sa.Column(sa.DateTime(timezone=True), default=utcnow)
    updated_at = sa.Column(sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    available_time_slots = relationship(
        TimeSlot,
        secondary=room_time_slots,
        lazy="selectin",
        order_by=[TimeSlot.date, TimeSlot.start_time],
    )


class CalendarEntry(Base):
    """Ledger row for one (room, time slot) pair."""

    __tablename__ = "calendar_entries"
    __table_args__ = (
        sa.UniqueConstraint("room_id", "time_slot_id", name="uq_calendar_room_slot"),
        sa.CheckConstraint("total_capacity >= 1", name="ck_calendar_total_capacity"),
        sa.CheckConstraint("seats_booked >= 0", name="ck_calendar_seats_non_negative"),
        sa.CheckConstraint("seats_booked <= total_capacity", name="ck_calendar_seats_within_capacity"),
    )

    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    room_id = sa.Column(sa.Uuid, sa.ForeignKey("rooms.id"), nullable=False, index=True)
    time_slot_id = sa.Column(sa.Uuid, sa.ForeignKey("time_slots.id"), nullable=False, index=True)
    total_capacity = sa.Column(sa.Integer, nullable=False)
    seats_booked = sa.Column(sa.Integer, nullable=False, default=0)
    created_at = sa.Column(sa.DateTime(timezone=True), default=utcnow)
    updated_at = sa.Column(sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    room = relationship(Room, lazy="joined")
    time_slot = relationship(TimeSlot, lazy="joined")
    booked_by = relationship(
        "Booking",
        back_populates="calendar_entry",
        lazy="selectin",
        order_by="Booking.booking_date",
    )

    @property
    def room_available(self) -> int:
        return self.total_capacity - self.seats_booked

    @property
    def is_available(self) -> bool:
        return self.room_available > 0


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        sa.CheckConstraint("seats >= 1", name="ck_booking_seats"),
    )

    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    calendar_entry_id = sa.Column(
        sa.Uuid, sa.ForeignKey("calendar_entries.id"), nullable=False, index=True
    )
    user_id = sa.Column(sa.Uuid, nullable=False, index=True)
    seats = sa.Column(sa.Integer, nullable=False)
    booking_date = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow)

    calendar_entry = relationship(CalendarEntry, back_populates="booked_by")
