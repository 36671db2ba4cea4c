import os

# database.py refuses to import without a URL; tests bring their own engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from database import get_session, init_db
from main import app
from schemas import BookingCreate


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rooms.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_candidate():
    """Factory for booking requests against room R1 on 2024-06-01."""

    def factory(**overrides):
        data = {
            "room_id": "R1",
            "room_name": "Conference Room A",
            "floor": "Fourth Floor",
            "booked_by": "Sarah Johnson",
            "date": "2024-06-01",
            "start_time": "09:00",
            "end_time": "10:00",
            "booking_secret": "abc",
        }
        data.update(overrides)
        return BookingCreate(**data)

    return factory
