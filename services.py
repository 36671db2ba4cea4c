import asyncio
import datetime
import logging
from collections import Counter
from contextlib import asynccontextmanager
from typing import List, Optional

from sqlmodel import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from auth import authorize, is_admin
from errors import (
    Conflict,
    Forbidden,
    InvalidDuration,
    NotFound,
    StoreError,
    StoreUnavailable,
    ValidationError,
)
from models import Booking, Room
from scheduling import derive_status, find_conflict, to_minutes
from schemas import BookingCreate, BookingRead

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("room_id", "date", "start_time", "end_time", "booked_by", "booking_secret")


class AdmissionLocks:
    """Critical sections keyed by (room_id, date).

    The overlap check and the insert must not interleave for the same room
    and day, otherwise two requests can both pass the check against the same
    snapshot. A lock is dropped once nobody holds or waits on it.
    """

    def __init__(self):
        self._locks = {}
        self._users = Counter()

    def __len__(self):
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, room_id: str, day: datetime.date):
        key = (room_id, day)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


admission_locks = AdmissionLocks()


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_candidate(candidate: BookingCreate) -> datetime.date:
    missing = [name for name in REQUIRED_FIELDS if not _clean(getattr(candidate, name))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        day = datetime.date.fromisoformat(candidate.date.strip())
    except ValueError:
        raise ValidationError(f"Invalid date {candidate.date!r}, expected YYYY-MM-DD")

    start, end = to_minutes(candidate.start_time), to_minutes(candidate.end_time)
    if end < start + config.MIN_BOOKING_MINUTES:
        raise InvalidDuration(
            f"Bookings must end at least {config.MIN_BOOKING_MINUTES} minutes after they start"
        )
    return day


def conflict_message(booking: Booking) -> str:
    return (
        f"This room is already booked by {booking.booked_by} "
        f"from {booking.start_time} to {booking.end_time} on {booking.date.isoformat()}"
    )


async def ensure_room(session: AsyncSession, candidate: BookingCreate) -> Room:
    """Return the candidate's room, creating a placeholder if it is unknown.

    The room row is read FOR UPDATE so that, on stores with row locks,
    admissions for one room serialize across processes as well.
    """
    room_id = candidate.room_id.strip()
    statement = select(Room).where(Room.id == room_id).with_for_update()
    room = (await session.execute(statement)).scalars().first()
    if room is not None:
        return room

    placeholder = Room(
        id=room_id,
        name=_clean(candidate.room_name) or room_id,
        floor=_clean(candidate.floor),
        capacity=config.DEFAULT_ROOM_CAPACITY,
    )
    session.add(placeholder)
    try:
        await session.flush()
    except IntegrityError:
        # Someone else created it between our read and insert
        await session.rollback()
        logger.info("Room %s created concurrently, reusing it", room_id)
        return (await session.execute(statement)).scalars().one()

    logger.info("Provisioned placeholder room %s (%s)", placeholder.id, placeholder.name)
    return placeholder


async def bookings_for(session: AsyncSession, room_id: str, day: datetime.date) -> List[Booking]:
    statement = select(Booking).where(Booking.room_id == room_id, Booking.date == day)
    result = await session.execute(statement)
    return list(result.scalars().all())


async def propose_booking(session: AsyncSession, candidate: BookingCreate) -> Booking:
    """Admit a booking unless it overlaps an existing one for the same room and day.

    Raises ValidationError / InvalidDuration for bad input, Conflict when the
    interval is taken, Forbidden for a wrong admin_token, and StoreError when
    the store fails. A correct admin_token skips the overlap check.

    A Conflict rolls back the caller's session, expiring every instance
    loaded through it.
    """
    day = validate_candidate(candidate)

    override = False
    if candidate.admin_token:
        if not is_admin(candidate.admin_token):
            raise Forbidden("Invalid admin override token")
        override = True

    room_id = candidate.room_id.strip()
    async with admission_locks.hold(room_id, day):
        try:
            room = await ensure_room(session, candidate)

            existing = await bookings_for(session, room_id, day)
            blocking = find_conflict(candidate.start_time, candidate.end_time, existing)
            if blocking is not None:
                if not override:
                    # Snapshot before rollback expires the instance
                    conflict = Conflict(BookingRead.derived(blocking), conflict_message(blocking))
                    await session.rollback()
                    logger.info(
                        "Rejected %s-%s in room %s on %s: held by booking %s",
                        candidate.start_time, candidate.end_time, room_id, day, conflict.booking.id,
                    )
                    raise conflict
                logger.warning(
                    "Admin override: booking room %s on %s over booking %s", room_id, day, blocking.id
                )

            booking = Booking(
                room_id=room.id,
                room_name=_clean(candidate.room_name) or room.name,
                floor=_clean(candidate.floor) or room.floor,
                booked_by=candidate.booked_by.strip(),
                date=day,
                start_time=candidate.start_time,
                end_time=candidate.end_time,
                status=derive_status(day, candidate.start_time, candidate.end_time),
                booking_secret=candidate.booking_secret,
            )
            session.add(booking)
            await session.commit()
            await session.refresh(booking)
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.exception("Failed to create booking for room %s: %s", room_id, exc)
            raise StoreError("Failed to create booking") from exc

    logger.info("Booked room %s on %s %s-%s (%s)", room_id, day, booking.start_time, booking.end_time, booking.id)
    return booking


async def get_booking(session: AsyncSession, booking_id: str) -> Booking:
    try:
        booking = await session.get(Booking, booking_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load booking %s: %s", booking_id, exc)
        raise StoreUnavailable() from exc

    if booking is None:
        raise NotFound()
    return booking


async def delete_booking(session: AsyncSession, booking_id: str, user_secret: Optional[str]) -> None:
    booking = await get_booking(session, booking_id)

    if not authorize(booking.booking_secret, user_secret):
        logger.warning("Refused deletion of booking %s: secret mismatch", booking_id)
        raise Forbidden()
    if is_admin(user_secret):
        logger.warning("Admin override: deleting booking %s", booking_id)

    try:
        await session.delete(booking)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to delete booking %s: %s", booking_id, exc)
        raise StoreError("Failed to delete booking") from exc

    logger.info("Deleted booking %s", booking_id)


async def update_status(session: AsyncSession, booking_id: str, status: str) -> Booking:
    # Open to any caller, like the clients that patch status today
    booking = await get_booking(session, booking_id)
    booking.status = status
    try:
        await session.commit()
        await session.refresh(booking)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to update booking %s: %s", booking_id, exc)
        raise StoreError("Failed to update booking") from exc
    return booking


async def list_rooms(session: AsyncSession) -> List[Room]:
    try:
        result = await session.execute(select(Room).order_by(Room.floor, Room.name))
        return list(result.scalars().all())
    except SQLAlchemyError as exc:
        logger.exception("Rooms query failed: %s", exc)
        raise StoreUnavailable() from exc


async def list_bookings(
    session: AsyncSession,
    room_id: Optional[str] = None,
    day: Optional[datetime.date] = None,
    status: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> List[BookingRead]:
    """Bookings ordered by date then start time, with status derived at read time."""
    statement = select(Booking)
    if room_id:
        statement = statement.where(Booking.room_id == room_id)
    if day:
        statement = statement.where(Booking.date == day)
    statement = statement.order_by(Booking.date, Booking.start_time)

    try:
        result = await session.execute(statement)
        bookings = result.scalars().all()
    except SQLAlchemyError as exc:
        logger.exception("Bookings query failed: %s", exc)
        raise StoreUnavailable() from exc

    now = now or datetime.datetime.now()
    views = [BookingRead.derived(booking, now) for booking in bookings]
    if status:
        views = [view for view in views if view.status == status]
    return views
