import pytest

from mcoj_api.errors import NotFoundError
from mcoj_api.schemas import EventCreate, EventFields
from mcoj_api.services import events_service


def event(name, date="2026-11-01", **extra):
    return EventCreate(date=date, venue="Fabric", event_name=name, **extra)


async def test_create_event_appends_position(db):
    first = await events_service.create_event(db, event("Garage Nation"))
    second = await events_service.create_event(db, event("Sunday Social"))

    assert (first.position, second.position) == (1, 2)
    assert len(first.id) == 32


async def test_update_event_is_partial(db):
    created = await events_service.create_event(db, event("Garage Nation", address="77a Charterhouse St"))

    updated = await events_service.update_event(db, created.id, EventFields(venue="Ministry of Sound"))

    assert updated.venue == "Ministry of Sound"
    assert updated.address == "77a Charterhouse St"
    assert updated.event_name == "Garage Nation"


async def test_missing_event(db):
    with pytest.raises(NotFoundError, match="Event not found"):
        await events_service.update_event(db, "nope", EventFields(venue="x"))
    with pytest.raises(NotFoundError):
        await events_service.delete_event(db, "nope")


async def test_reorder_puts_listed_first(db):
    a = await events_service.create_event(db, event("A"))
    b = await events_service.create_event(db, event("B"))
    c = await events_service.create_event(db, event("C"))
    d = await events_service.create_event(db, event("D"))

    ordered = await events_service.reorder_events(db, [c.id, "unknown", a.id])

    assert [e.id for e in ordered] == [c.id, a.id, b.id, d.id]
    assert [e.id for e in await events_service.list_events(db)] == [c.id, a.id, b.id, d.id]
    assert [e.position for e in ordered] == [1, 2, 3, 4]


async def test_events_api(client, auth_headers):
    payload = {
        "event": {
            "date": "2026-12-31",
            "venue": "Printworks",
            "eventName": "NYE Garage Special",
            "timeStart": "22:00",
            "timeEnd": "06:00",
            "ticketLink": "https://tickets.example/nye",
        }
    }

    response = await client.post("/api/events", json=payload)
    assert response.status_code == 401

    response = await client.post("/api/events", json=payload, headers=auth_headers)
    assert response.status_code == 201
    created = response.json()["event"]
    assert created["eventName"] == "NYE Garage Special"
    assert created["ticketLink"] == "https://tickets.example/nye"
    assert created["position"] == 1

    response = await client.put(
        f"/api/events/{created['id']}",
        json={"event": {"timeStart": "21:00"}},
        headers=auth_headers,
    )
    assert response.json()["event"]["timeStart"] == "21:00"

    listing = (await client.get("/api/events")).json()
    assert listing["success"] is True
    assert [e["id"] for e in listing["events"]] == [created["id"]]

    response = await client.delete(f"/api/events/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    response = await client.delete(f"/api/events/{created['id']}", headers=auth_headers)
    assert response.status_code == 404


async def test_create_event_requires_fields(client, auth_headers):
    response = await client.post("/api/events", json={"event": {"venue": "Fabric"}}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"


async def test_reorder_rejects_duplicates(client, auth_headers):
    response = await client.post("/api/events/reorder", json={"eventIds": ["a", "a"]}, headers=auth_headers)
    assert response.status_code == 400
