from datetime import date

import pytest

from mcoj_api.errors import NotFoundError, ValidationError
from mcoj_api.schemas import BookingCreate
from mcoj_api.services import booking_service


def booking(name="Sam", event_date=date(2026, 12, 5), **extra):
    return BookingCreate(name=name, email="sam@example.com", venue="Village Underground", date=event_date, **extra)


async def test_new_booking_starts_as_new(db):
    created = await booking_service.create_booking(db, booking(eventType="Wedding", message="Two hour set"))

    assert created.status == "new"
    assert created.event_type == "Wedding"
    assert created.additional_info == "Two hour set"


async def test_list_filters_and_orders_by_event_date(db):
    early = await booking_service.create_booking(db, booking("A", date(2026, 3, 1)))
    late = await booking_service.create_booking(db, booking("B", date(2026, 9, 1)))
    middle = await booking_service.create_booking(db, booking("C", date(2026, 6, 1)))
    await booking_service.update_status(db, middle.id, "booked")

    everything = await booking_service.list_bookings(db)
    assert [b.id for b in everything] == [late.id, middle.id, early.id]

    booked = await booking_service.list_bookings(db, statuses=["booked"])
    assert [b.id for b in booked] == [middle.id]

    window = await booking_service.list_bookings(db, from_date=date(2026, 2, 1), to_date=date(2026, 7, 1))
    assert [b.id for b in window] == [middle.id, early.id]

    page = await booking_service.list_bookings(db, limit=1, offset=1)
    assert [b.id for b in page] == [middle.id]


async def test_status_changes_are_unconstrained(db):
    created = await booking_service.create_booking(db, booking())

    for status in ("booked", "new", "canceled", "contacted"):
        updated = await booking_service.update_status(db, created.id, status)
        assert updated.status == status

    with pytest.raises(ValidationError):
        await booking_service.update_status(db, created.id, "maybe")
    with pytest.raises(ValidationError):
        await booking_service.list_bookings(db, statuses=["maybe"])


async def test_unknown_booking(db):
    with pytest.raises(NotFoundError):
        await booking_service.update_status(db, "missing", "booked")
    with pytest.raises(NotFoundError):
        await booking_service.delete_booking(db, "missing")


async def test_booking_api(client, auth_headers):
    form = {
        "name": "Jo Bloggs",
        "email": "jo@example.com",
        "phone": "07700 900000",
        "venue": "Corsica Studios",
        "date": "2026-08-14",
        "time": "23:00",
        "eventType": "Club night",
        "message": "Looking for a 90 minute set",
    }
    response = await client.post("/api/booking", json=form)
    assert response.status_code == 201
    booking_id = response.json()["bookingId"]

    response = await client.get("/api/admin/bookings")
    assert response.status_code == 401

    listing = (await client.get("/api/admin/bookings", params={"status": "new"}, headers=auth_headers)).json()
    assert listing["count"] == 1
    assert listing["bookings"][0]["event_date"] == "2026-08-14"
    assert listing["bookings"][0]["additional_info"] == "Looking for a 90 minute set"

    response = await client.patch(
        "/api/admin/bookings", json={"id": booking_id, "status": "contacted"}, headers=auth_headers
    )
    assert response.json()["booking"]["status"] == "contacted"

    response = await client.patch(
        "/api/admin/bookings", json={"id": booking_id, "status": "pending"}, headers=auth_headers
    )
    assert response.status_code == 400

    response = await client.delete("/api/admin/bookings", params={"id": booking_id}, headers=auth_headers)
    assert response.status_code == 200
    response = await client.delete("/api/admin/bookings", params={"id": booking_id}, headers=auth_headers)
    assert response.status_code == 404


async def test_booking_form_validation(client):
    response = await client.post(
        "/api/booking",
        json={"name": "Jo", "email": "not-an-email", "venue": "X", "date": "2026-08-14"},
    )
    assert response.status_code == 400

    response = await client.post("/api/booking", json={"name": "Jo", "email": "jo@example.com", "venue": "X"})
    assert response.status_code == 400
