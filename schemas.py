import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict

from models import Booking
from scheduling import derive_status

BookingStatus = Literal["upcoming", "in-progress", "completed"]


# Every field optional so missing ones surface as our ValidationError, not a 422
class BookingCreate(BaseModel):
    room_id: Optional[str] = None
    room_name: Optional[str] = None
    floor: Optional[str] = None
    booked_by: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    booking_secret: Optional[str] = None
    # Accepted for compatibility; status is always derived server-side
    status: Optional[str] = None
    admin_token: Optional[str] = None


class StatusUpdate(BaseModel):
    status: BookingStatus


class BookingDelete(BaseModel):
    userSecret: Optional[str] = None


class RoomRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    floor: str
    capacity: int
    created_at: datetime.datetime


class BookingRead(BaseModel):
    """Public view of a booking; never carries the booking secret."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    room_id: Optional[str]
    room_name: str
    floor: str
    booked_by: str
    date: datetime.date
    start_time: str
    end_time: str
    status: Optional[str]
    created_at: datetime.datetime

    @classmethod
    def derived(cls, booking: Booking, now: Optional[datetime.datetime] = None) -> "BookingRead":
        view = cls.model_validate(booking)
        view.status = derive_status(booking.date, booking.start_time, booking.end_time, now)
        return view
