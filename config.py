import os
from dotenv import load_dotenv

load_dotenv()

# Shared admin credential. Any caller presenting it may delete any booking
# or force a booking past the overlap check.
ADMIN_OVERRIDE_TOKEN = os.environ.get("ADMIN_OVERRIDE_TOKEN", "admin123")

# Shortest booking the service admits, in minutes (one UI slot)
MIN_BOOKING_MINUTES = int(os.environ.get("MIN_BOOKING_MINUTES", "30"))

# Capacity given to placeholder rooms created on first booking
DEFAULT_ROOM_CAPACITY = int(os.environ.get("DEFAULT_ROOM_CAPACITY", "4"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
SQL_ECHO = os.environ.get("SQL_ECHO", "false").lower() in ("1", "true", "yes")
