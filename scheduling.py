import re
import datetime
from typing import Iterable, Optional

from errors import InvalidTimeFormat

UPCOMING = "upcoming"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
STATUSES = (UPCOMING, IN_PROGRESS, COMPLETED)

TIME_PATTERN = re.compile(r"(\d{2}):(\d{2})")


def to_minutes(value: str) -> int:
    """Minutes since midnight for an "HH:MM" string."""
    match = TIME_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimeFormat(f"Invalid time {value!r}, expected HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(f"Invalid time {value!r}, out of range")
    return hours * 60 + minutes


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # Half-open: a booking ending at 10:00 leaves 10:00 free
    return a_start < b_end and a_end > b_start


def times_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return overlaps(to_minutes(a_start), to_minutes(a_end), to_minutes(b_start), to_minutes(b_end))


def find_conflict(start_time: str, end_time: str, bookings: Iterable) -> Optional[object]:
    """First booking (by start time) whose interval overlaps [start_time, end_time)."""
    start, end = to_minutes(start_time), to_minutes(end_time)
    for booking in sorted(bookings, key=lambda b: b.start_time):
        if overlaps(start, end, to_minutes(booking.start_time), to_minutes(booking.end_time)):
            return booking
    return None


def derive_status(day: datetime.date, start_time: str, end_time: str, now: Optional[datetime.datetime] = None) -> str:
    now = now or datetime.datetime.now()
    start = datetime.datetime.combine(day, datetime.time.fromisoformat(start_time))
    end = datetime.datetime.combine(day, datetime.time.fromisoformat(end_time))

    if now < start:
        return UPCOMING
    if now < end:
        return IN_PROGRESS
    return COMPLETED
