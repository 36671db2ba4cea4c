from sqlalchemy.exc import OperationalError

import config
from database import get_session
from main import app
from seed_rooms import seed_rooms

BOOKING = {
    "room_id": "R1",
    "room_name": "Conference Room A",
    "floor": "Fourth Floor",
    "booked_by": "Sarah Johnson",
    "date": "2024-06-01",
    "start_time": "09:00",
    "end_time": "10:00",
    "status": "upcoming",
    "booking_secret": "abc",
}


class UnreachableSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("could not connect to server"))

    async def rollback(self):
        pass


async def post_booking(client, **overrides):
    return await client.post("/bookings", json={**BOOKING, **overrides})


async def test_create_booking(client):
    response = await post_booking(client)

    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["data"]["id"]
    assert body["data"]["room_id"] == "R1"
    assert body["data"]["date"] == "2024-06-01"
    assert body["data"]["status"] == "completed"
    assert "booking_secret" not in body["data"]


async def test_conflict_response_shape(client):
    first = (await post_booking(client)).json()["data"]

    response = await post_booking(client, start_time="09:30", end_time="10:30", booked_by="Mike Davis")

    assert response.status_code == 409
    body = response.json()
    assert body["ok"] is False
    assert body["error"] == "conflict"
    assert "Sarah Johnson" in body["conflict"]["message"]
    assert body["conflict"]["booking"]["id"] == first["id"]
    assert body["conflict"]["booking"]["start_time"] == "09:00"
    assert "booking_secret" not in body["conflict"]["booking"]


async def test_shared_boundary_admitted(client):
    await post_booking(client)
    response = await post_booking(client, start_time="10:00", end_time="11:00")
    assert response.status_code == 201


async def test_admin_override_creation(client):
    await post_booking(client)
    response = await post_booking(
        client, start_time="09:30", end_time="10:30", admin_token=config.ADMIN_OVERRIDE_TOKEN
    )
    assert response.status_code == 201


async def test_missing_fields_rejected(client):
    response = await client.post("/bookings", json={"room_id": "R1"})

    assert response.status_code == 400
    body = response.json()
    assert body["ok"] is False
    assert "booked_by" in body["error"]


async def test_short_booking_rejected(client):
    response = await post_booking(client, start_time="09:00", end_time="09:15")
    assert response.status_code == 400
    assert response.json()["ok"] is False


async def test_malformed_json_is_still_json(client):
    response = await client.post(
        "/bookings", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["ok"] is False


async def test_list_bookings_ordered(client):
    await post_booking(client, date="2024-06-02", start_time="08:00", end_time="09:00")
    await post_booking(client, start_time="15:00", end_time="16:00")
    await post_booking(client, room_id="R2", start_time="09:00", end_time="10:00")

    response = await client.get("/bookings")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [(b["date"], b["start_time"]) for b in data] == [
        ("2024-06-01", "09:00"),
        ("2024-06-01", "15:00"),
        ("2024-06-02", "08:00"),
    ]
    assert all("booking_secret" not in b for b in data)


async def test_list_bookings_filtered(client):
    await post_booking(client)
    await post_booking(client, room_id="R2")

    response = await client.get("/bookings", params={"room_id": "R2", "date": "2024-06-01"})
    data = response.json()["data"]
    assert [b["room_id"] for b in data] == ["R2"]

    response = await client.get("/bookings", params={"status": "upcoming"})
    assert response.json()["data"] == []


async def test_get_single_booking(client):
    created = (await post_booking(client)).json()["data"]

    response = await client.get(f"/bookings/{created['id']}")
    assert response.json()["data"]["booked_by"] == "Sarah Johnson"

    response = await client.get("/bookings/missing")
    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "Booking not found"}


async def test_rooms_listing(client, session):
    await seed_rooms(session)

    response = await client.get("/rooms")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert [room["name"] for room in body["data"]][:2] == ["Small Meeting Room", "Training Room"]
    assert body["data"][-1]["floor"] == "Ground Floor"


async def test_delete_scenario(client):
    created = (await post_booking(client)).json()["data"]
    url = f"/bookings/{created['id']}"

    response = await client.request("DELETE", url, json={"userSecret": "wrong"})
    assert response.status_code == 403
    assert response.json() == {"ok": False, "error": "Invalid secret key"}

    response = await client.request("DELETE", url, json={"userSecret": "abc"})
    assert response.status_code == 200
    assert response.json()["ok"] is True

    response = await client.request("DELETE", url, json={"userSecret": "abc"})
    assert response.status_code == 404
    assert response.json()["ok"] is False


async def test_delete_with_admin_token(client):
    created = (await post_booking(client)).json()["data"]
    response = await client.request(
        "DELETE", f"/bookings/{created['id']}", json={"userSecret": config.ADMIN_OVERRIDE_TOKEN}
    )
    assert response.status_code == 200


async def test_delete_without_body_is_forbidden(client):
    created = (await post_booking(client)).json()["data"]
    response = await client.delete(f"/bookings/{created['id']}")
    assert response.status_code == 403


async def test_patch_status(client):
    created = (await post_booking(client)).json()["data"]

    response = await client.patch(f"/bookings/{created['id']}", json={"status": "in-progress"})
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "in-progress"

    response = await client.patch(f"/bookings/{created['id']}", json={"status": "cancelled"})
    assert response.status_code == 400
    assert response.json()["ok"] is False

    response = await client.patch("/bookings/missing", json={"status": "completed"})
    assert response.status_code == 404


async def test_store_unreachable(client):
    async def unreachable():
        yield UnreachableSession()

    app.dependency_overrides[get_session] = unreachable

    for path in ("/rooms", "/bookings"):
        response = await client.get(path)
        assert response.status_code == 503
        assert response.json() == {"ok": False, "error": "store-unreachable"}
