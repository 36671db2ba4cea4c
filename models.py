import uuid
import datetime
from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, Index


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    # Timestamp columns are stored as UTC and must be timezone-aware
    return datetime.datetime.now(datetime.timezone.utc)


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    floor: str = Field(index=True)
    capacity: int
    created_at: datetime.datetime = Field(default_factory=utcnow)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # "HH:MM" strings order lexicographically, so no overnight bookings
        CheckConstraint("start_time < end_time", name="booking_time_order"),
        Index("ix_bookings_room_date", "room_id", "date"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    # Nullable so a booking outlives its room; room_name/floor are the record
    room_id: Optional[str] = Field(default=None, foreign_key="rooms.id", ondelete="SET NULL")
    room_name: str
    floor: str
    booked_by: str
    date: datetime.date
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    # Cached hint only; reads recompute it from date/start/end
    status: Optional[str] = Field(default="upcoming")
    booking_secret: str
    created_at: datetime.datetime = Field(default_factory=utcnow)
