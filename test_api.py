from datetime import date, timedelta

from reservations.models import Booking, BookingStatus
from reservations.scheduling import DAY_NAMES

FUTURE = date.today() + timedelta(days=14)
DAY = FUTURE.isoformat()


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_availability_wire_format(client, add_table):
    add_table("T1", 4)

    response = client.get("/api/bookings/availability", params={"date": DAY, "guests": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == DAY
    assert body["availableSlots"][0] == {"time": "11:00", "available": True, "remainingCapacity": 4}
    assert len(body["availableSlots"]) == 22
    assert "s-maxage=30" in response.headers["cache-control"]


def test_availability_closed_day(client, db, restaurant, add_table):
    add_table("T1", 4)
    restaurant.operating_hours = {DAY_NAMES[FUTURE.weekday()]: {"closed": True}}
    db.commit()

    response = client.get("/api/bookings/availability", params={"date": DAY})

    assert response.status_code == 200
    assert response.json()["availableSlots"] == []


def test_availability_rejects_bad_input(client, restaurant):
    yesterday = (date.today() - timedelta(days=1)).isoformat()

    assert client.get("/api/bookings/availability", params={"date": "tomorrow"}).status_code == 400
    assert client.get("/api/bookings/availability", params={"date": yesterday}).status_code == 400
    assert client.get("/api/bookings/availability", params={"date": DAY, "guests": 0}).status_code == 400
    assert client.get("/api/bookings/availability", params={"date": DAY, "guests": 21}).status_code == 400


def test_create_and_fetch_booking(client, add_table):
    add_table("T1", 4)

    response = client.post("/api/bookings", json={
        "date": DAY, "time": "12:00", "guests": 2, "customer_name": "Ada",
    })

    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "PENDING"
    assert created["table_id"] is None

    fetched = client.get(f"/api/bookings/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["booking_number"] == created["booking_number"]


def test_create_booking_without_restaurant(client):
    response = client.post("/api/bookings", json={"date": DAY, "time": "12:00", "guests": 2})

    assert response.status_code == 500
    assert "configuration" in response.json()["detail"]


def test_create_booking_unavailable_slot(client, add_table):
    add_table("T1", 2)

    response = client.post("/api/bookings", json={"date": DAY, "time": "12:00", "guests": 6})

    assert response.status_code == 409


def test_assign_and_unassign_table(client, add_table, add_booking):
    t1 = add_table("T1", 4)
    booking = add_booking(DAY, "12:00", status=BookingStatus.PENDING)

    assigned = client.put(f"/api/bookings/{booking.id}/table", json={"table_id": t1.id})
    assert assigned.status_code == 200
    assert assigned.json()["table_id"] == t1.id
    assert assigned.json()["table"]["number"] == "T1"

    cleared = client.put(f"/api/bookings/{booking.id}/table", json={"table_id": None})
    assert cleared.status_code == 200
    assert cleared.json()["table_id"] is None


def test_assign_inactive_table_conflict(client, db, add_table, add_booking):
    t1 = add_table("T1", 4)
    closed = add_table("T2", 4, is_active=False)
    booking = add_booking(DAY, "12:00", table=t1)

    response = client.put(f"/api/bookings/{booking.id}/table", json={"table_id": closed.id})

    assert response.status_code == 409
    db.expire_all()
    assert db.get(Booking, booking.id).table_id == t1.id


def test_patch_without_table_id_keeps_assignment(client, add_table, add_booking):
    t1 = add_table("T1", 4)
    booking = add_booking(DAY, "12:00", table=t1, status=BookingStatus.PENDING)

    response = client.patch(f"/api/bookings/{booking.id}", json={"status": "CONFIRMED"})

    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"
    assert response.json()["table_id"] == t1.id

    response = client.patch(f"/api/bookings/{booking.id}", json={"table_id": None})
    assert response.json()["table_id"] is None
    assert response.json()["status"] == "CONFIRMED"


def test_patch_invalid_transition(client, add_booking):
    booking = add_booking(DAY, "12:00", status=BookingStatus.PENDING)

    assert client.patch(f"/api/bookings/{booking.id}", json={"status": "COMPLETED"}).status_code == 409
    assert client.patch(f"/api/bookings/{booking.id}", json={"status": "SEATED"}).status_code == 422


def test_cancel_booking(client, add_booking):
    booking = add_booking(DAY, "12:00")

    response = client.delete(f"/api/bookings/{booking.id}")
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"

    assert client.delete(f"/api/bookings/{booking.id}").status_code == 409


def test_missing_booking(client, restaurant):
    assert client.get("/api/bookings/999").status_code == 404
    assert client.put("/api/bookings/999/table", json={"table_id": None}).status_code == 404


def test_list_bookings(client, add_booking):
    add_booking(DAY, "12:00", customer_id="cust-1")
    add_booking(DAY, "13:00", status=BookingStatus.CANCELLED)

    body = client.get("/api/bookings", params={"status": "CANCELLED"}).json()

    assert body["pagination"]["total"] == 1
    assert body["data"][0]["time"] == "13:00"
    assert client.get("/api/bookings", params={"customer_id": "cust-1"}).json()["pagination"]["total"] == 1
    assert client.get("/api/bookings", params={"page": 0}).status_code == 400


def test_table_endpoints(client, restaurant):
    created = client.post("/api/tables", json={"number": "7", "capacity": 6})
    assert created.status_code == 201
    table_id = created.json()["id"]

    assert client.post("/api/tables", json={"number": "8", "capacity": 0}).status_code == 422
    assert client.post("/api/tables", json={"number": "7", "capacity": 2}).status_code == 409

    updated = client.patch(f"/api/tables/{table_id}", json={"is_active": False})
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False

    assert client.get("/api/tables", params={"active_only": True}).json() == []
    assert len(client.get("/api/tables").json()) == 1
