import logging
from datetime import date
from typing import Optional

from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

import config
import services
from database import get_session, init_db
from errors import BookingError, Conflict
from schemas import BookingCreate, BookingDelete, BookingRead, BookingStatus, RoomRead, StatusUpdate

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Conference Room Booking")


@app.on_event("startup")
async def on_startup():
    await init_db()


# --- Error shape: every failure is {"ok": false, "error": ...} ---
@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    body = {"ok": False, "error": exc.message}
    if isinstance(exc, Conflict):
        body["error"] = "conflict"
        body["conflict"] = {
            "message": exc.message,
            "booking": exc.booking,
        }
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"ok": False, "error": problems or "Invalid request"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"ok": False, "error": "Internal server error"},
    )


# --- Endpoint 1: GET /rooms ---
@app.get("/rooms")
async def get_rooms(session: AsyncSession = Depends(get_session)):
    rooms = await services.list_rooms(session)
    return {"ok": True, "data": [RoomRead.model_validate(room) for room in rooms]}


# --- Endpoint 2: GET /bookings ---
@app.get("/bookings")
async def get_bookings(
    room_id: Optional[str] = None,
    date: Optional[date] = None,
    status: Optional[BookingStatus] = None,
    session: AsyncSession = Depends(get_session),
):
    bookings = await services.list_bookings(session, room_id=room_id, day=date, status=status)
    return {"ok": True, "data": bookings}


@app.get("/bookings/{booking_id}")
async def get_booking(booking_id: str, session: AsyncSession = Depends(get_session)):
    booking = await services.get_booking(session, booking_id)
    return {"ok": True, "data": BookingRead.derived(booking)}


# --- Endpoint 3: POST /bookings ---
@app.post("/bookings", status_code=status.HTTP_201_CREATED)
async def create_booking(
    candidate: BookingCreate,
    session: AsyncSession = Depends(get_session),
):
    booking = await services.propose_booking(session, candidate)
    return {"ok": True, "data": BookingRead.derived(booking)}


# --- Endpoint 4: PATCH /bookings/{id} ---
@app.patch("/bookings/{booking_id}")
async def patch_booking(
    booking_id: str,
    update: StatusUpdate,
    session: AsyncSession = Depends(get_session),
):
    booking = await services.update_status(session, booking_id, update.status)
    # Echo what was stored; reads derive the live status
    return {"ok": True, "data": BookingRead.model_validate(booking)}


# --- Endpoint 5: DELETE /bookings/{id} ---
@app.delete("/bookings/{booking_id}")
async def delete_booking(
    booking_id: str,
    payload: Optional[BookingDelete] = Body(default=None),
    session: AsyncSession = Depends(get_session),
):
    user_secret = payload.userSecret if payload else None
    await services.delete_booking(session, booking_id, user_secret)
    return {"ok": True, "message": "Booking deleted successfully"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
