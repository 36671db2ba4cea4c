# seed_rooms.py
# Bootstraps the room catalog. Safe to run repeatedly: rooms are upserted by id.
import asyncio
import logging

from database import async_session, init_db
from models import Room

logger = logging.getLogger(__name__)

DEFAULT_ROOMS = [
    {"id": "1", "name": "Conference Room A", "floor": "Fourth Floor", "capacity": 12},
    {"id": "2", "name": "Meeting Room B", "floor": "Fourth Floor", "capacity": 8},
    {"id": "3", "name": "Boardroom", "floor": "Fourth Floor", "capacity": 16},
    {"id": "4", "name": "Small Meeting Room", "floor": "First Floor", "capacity": 4},
    {"id": "5", "name": "Training Room", "floor": "First Floor", "capacity": 20},
    {"id": "6", "name": "Reception Meeting Room", "floor": "Ground Floor", "capacity": 6},
    {"id": "7", "name": "Lobby Conference Room", "floor": "Ground Floor", "capacity": 10},
]


async def seed_rooms(session, rooms=DEFAULT_ROOMS):
    """Insert or update each room; returns how many were newly created."""
    created = 0
    for data in rooms:
        room = await session.get(Room, data["id"])
        if room is None:
            session.add(Room(**data))
            created += 1
        else:
            room.name = data["name"]
            room.floor = data["floor"]
            room.capacity = data["capacity"]
    await session.commit()
    return created


async def main():
    await init_db()
    async with async_session() as session:
        created = await seed_rooms(session)
    logger.info("Seeded rooms: %d created, %d updated", created, len(DEFAULT_ROOMS) - created)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(name)s | %(levelname)s | %(message)s")
    asyncio.run(main())
