"""
Integration tests for the REST API endpoints.

Runs the real app against the in-memory SQLite database from ``conftest``.
The cleanup worker is patched out and rate limiting is disabled; the acting
user is passed in the ``X-User-Id`` header.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ridecircle.api.middleware import limiter
from ridecircle.domain.enums import ContactStatus, RideStatus
from tests.conftest import make_contact, make_ride

RIDE_BODY = {
    "from_location": "Central Station",
    "to_location": "Airport",
    "time": "2030-01-01T08:30:00",
}


def as_user(user) -> dict[str, str]:
    return {"X-User-Id": str(user.id)}


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory, monkeypatch):
    """AsyncClient backed by the per-test SQLite database."""
    monkeypatch.setattr(limiter, "enabled", False)

    with (
        patch(
            "ridecircle.workers.cleanup.start_cleanup_loop",
            new_callable=AsyncMock,
        ),
        patch(
            "ridecircle.workers.cleanup.stop_cleanup_loop",
            new_callable=AsyncMock,
        ),
    ):
        # DB session dependency
        async def _test_db():
            async with session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        from ridecircle.api.app import create_app
        from ridecircle.api.dependencies import get_db

        app = create_app()
        app.dependency_overrides[get_db] = _test_db

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_missing_identity_is_unauthorized(client: AsyncClient, users):
    resp = await client.get("/api/v1/rides/available")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_ride_returns_201(client: AsyncClient, users):
    resp = await client.post("/api/v1/rides", json=RIDE_BODY, headers=as_user(users["Alice"]))
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["accepter_id"] is None
    assert data["rider_name"] == "Alice"


@pytest.mark.asyncio
async def test_create_ride_validation(client: AsyncClient, users):
    resp = await client.post(
        "/api/v1/rides",
        json={**RIDE_BODY, "from_location": ""},
        headers=as_user(users["Alice"]),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient, users):
    resp = await client.get("/api/v1/rides/9999", headers=as_user(users["Alice"]))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_accept_flow(client: AsyncClient, db_session, users):
    alice, bob, carol = users["Alice"], users["Bob"], users["Carol"]
    ride_id = (
        await client.post("/api/v1/rides", json=RIDE_BODY, headers=as_user(alice))
    ).json()["id"]

    # Not a contact yet
    resp = await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_user(bob))
    assert resp.status_code == 403
    assert resp.json()["detail"]

    request = await client.post(
        "/api/v1/contacts", json={"contact_id": bob.id}, headers=as_user(alice)
    )
    assert request.status_code == 201
    edge_id = request.json()["id"]
    resp = await client.post(f"/api/v1/contacts/{edge_id}/accept", headers=as_user(alice))
    assert resp.status_code == 403
    resp = await client.post(f"/api/v1/contacts/{edge_id}/accept", headers=as_user(bob))
    assert resp.json()["status"] == "accepted"

    available = await client.get("/api/v1/rides/available", headers=as_user(bob))
    assert [r["id"] for r in available.json()] == [ride_id]

    resp = await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_user(bob))
    assert resp.status_code == 200
    assert resp.json()["status"] == "accepted"
    assert resp.json()["accepter_id"] == bob.id

    await make_contact(db_session, carol, alice)
    await db_session.commit()
    resp = await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_user(carol))
    assert resp.status_code == 409

    resp = await client.post(f"/api/v1/rides/{ride_id}/complete", headers=as_user(alice))
    assert resp.json()["status"] == "completed"
    resp = await client.post(
        f"/api/v1/rides/{ride_id}/cancel-request", headers=as_user(alice)
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cancel_offer_and_request(client: AsyncClient, db_session, users):
    alice, bob = users["Alice"], users["Bob"]
    ride = await make_ride(db_session, alice, accepter=bob, status=RideStatus.ACCEPTED)
    await db_session.commit()

    resp = await client.post(f"/api/v1/rides/{ride.id}/cancel-offer", headers=as_user(alice))
    assert resp.status_code == 403

    resp = await client.post(f"/api/v1/rides/{ride.id}/cancel-offer", headers=as_user(bob))
    assert resp.json()["status"] == "pending"
    assert resp.json()["accepter_id"] is None

    resp = await client.post(
        f"/api/v1/rides/{ride.id}/cancel-request", headers=as_user(alice)
    )
    assert resp.json()["status"] == "cancelled"

    inbox = await client.get("/api/v1/notifications", headers=as_user(alice))
    assert [n["type"] for n in inbox.json()] == ["rideCancelled"]


@pytest.mark.asyncio
async def test_edit_ride(client: AsyncClient, users):
    alice, bob = users["Alice"], users["Bob"]
    ride_id = (
        await client.post("/api/v1/rides", json=RIDE_BODY, headers=as_user(alice))
    ).json()["id"]

    resp = await client.put(
        f"/api/v1/rides/{ride_id}", json={"note": "Two bags"}, headers=as_user(bob)
    )
    assert resp.status_code == 403

    resp = await client.put(
        f"/api/v1/rides/{ride_id}", json={"note": "Two bags"}, headers=as_user(alice)
    )
    assert resp.status_code == 200
    assert resp.json()["note"] == "Two bags"
    assert resp.json()["is_edited"] is True
    assert resp.json()["to_location"] == "Airport"

    for blank in (None, " "):
        resp = await client.put(
            f"/api/v1/rides/{ride_id}", json={"rider_name": blank}, headers=as_user(alice)
        )
        assert resp.status_code == 422

    resp = await client.get(f"/api/v1/rides/{ride_id}", headers=as_user(alice))
    assert resp.json()["rider_name"] == "Alice"


@pytest.mark.asyncio
async def test_associated_people(client: AsyncClient, users):
    alice, bob = users["Alice"], users["Bob"]

    resp = await client.post(
        "/api/v1/associated-people",
        json={"name": " Mia ", "relationship": "daughter"},
        headers=as_user(alice),
    )
    assert resp.status_code == 201
    mia = resp.json()
    assert mia["name"] == "Mia"
    assert mia["user_id"] == alice.id

    resp = await client.post(
        "/api/v1/associated-people",
        json={"name": "  ", "relationship": "son"},
        headers=as_user(alice),
    )
    assert resp.status_code == 422

    resp = await client.post(
        "/api/v1/rides",
        json={**RIDE_BODY, "associated_person_id": mia["id"]},
        headers=as_user(alice),
    )
    assert resp.status_code == 201
    assert resp.json()["rider_name"] == "Mia"

    resp = await client.post(
        "/api/v1/rides",
        json={**RIDE_BODY, "associated_person_id": mia["id"]},
        headers=as_user(bob),
    )
    assert resp.status_code == 404

    resp = await client.get("/api/v1/associated-people", headers=as_user(bob))
    assert resp.json() == []

    resp = await client.delete(
        f"/api/v1/associated-people/{mia['id']}", headers=as_user(bob)
    )
    assert resp.status_code == 404

    resp = await client.delete(
        f"/api/v1/associated-people/{mia['id']}", headers=as_user(alice)
    )
    assert resp.status_code == 204

    resp = await client.get("/api/v1/associated-people", headers=as_user(alice))
    assert resp.json() == []


@pytest.mark.asyncio
async def test_notes(client: AsyncClient, db_session, users):
    alice, bob, carol = users["Alice"], users["Bob"], users["Carol"]
    ride = await make_ride(db_session, alice, accepter=bob, status=RideStatus.ACCEPTED)
    await db_session.commit()

    resp = await client.post(
        f"/api/v1/rides/{ride.id}/notes", json={"note": "At gate 3"}, headers=as_user(bob)
    )
    assert resp.status_code == 201

    resp = await client.get(f"/api/v1/rides/{ride.id}/notes", headers=as_user(alice))
    assert [n["note"] for n in resp.json()] == ["At gate 3"]

    resp = await client.get(f"/api/v1/rides/{ride.id}/notes", headers=as_user(carol))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_history_pagination(client: AsyncClient, db_session, users):
    alice = users["Alice"]
    for hours in range(3):
        await make_ride(db_session, alice, hours=hours, to_location=f"Stop {hours}")
    await make_ride(db_session, users["Bob"])
    await db_session.commit()

    resp = await client.get(
        "/api/v1/rides/history", params={"limit": 2}, headers=as_user(alice)
    )
    data = resp.json()
    assert (data["total"], data["page"], data["total_pages"]) == (3, 1, 2)
    assert [r["to_location"] for r in data["rides"]] == ["Stop 2", "Stop 1"]

    # Past the end falls back to the last page
    resp = await client.get(
        "/api/v1/rides/history", params={"limit": 2, "page": 9}, headers=as_user(alice)
    )
    data = resp.json()
    assert data["page"] == 2
    assert [r["to_location"] for r in data["rides"]] == ["Stop 0"]

    resp = await client.get(
        "/api/v1/rides/history", params={"search": "stop 1"}, headers=as_user(alice)
    )
    assert [r["to_location"] for r in resp.json()["rides"]] == ["Stop 1"]


@pytest.mark.asyncio
async def test_contacts_listing_and_removal(client: AsyncClient, db_session, users):
    alice, bob, carol = users["Alice"], users["Bob"], users["Carol"]
    edge = await make_contact(db_session, alice, bob)
    await db_session.commit()

    resp = await client.post(
        "/api/v1/contacts", json={"contact_phone": alice.phone}, headers=as_user(bob)
    )
    assert resp.status_code == 409

    resp = await client.post(
        "/api/v1/contacts",
        json={"contact_id": carol.id, "contact_phone": carol.phone},
        headers=as_user(alice),
    )
    assert resp.status_code == 422

    listed = (await client.get("/api/v1/contacts", headers=as_user(bob))).json()
    assert [(c["id"], c["user"]["name"], c["contact"]["name"]) for c in listed] == [
        (edge.id, "Alice", "Bob")
    ]

    resp = await client.delete(f"/api/v1/contacts/{edge.id}", headers=as_user(carol))
    assert resp.status_code == 403
    resp = await client.delete(f"/api/v1/contacts/{edge.id}", headers=as_user(bob))
    assert resp.status_code == 204
    assert (await client.get("/api/v1/contacts", headers=as_user(alice))).json() == []


@pytest.mark.asyncio
async def test_suggestions(client: AsyncClient, db_session, users):
    alice, bob, carol, dave = (users[n] for n in ("Alice", "Bob", "Carol", "Dave"))
    await make_contact(db_session, alice, bob)
    await make_contact(db_session, bob, dave)
    await make_ride(db_session, carol, accepter=bob, status=RideStatus.COMPLETED)
    await db_session.commit()

    resp = await client.get("/api/v1/contacts/suggestions", headers=as_user(alice))
    assert resp.status_code == 200
    assert [
        (s["id"], s["mutual_contacts"], s["common_rides"]) for s in resp.json()
    ] == [(dave.id, 1, 0), (carol.id, 0, 1)]

    resp = await client.get("/api/v1/contacts/suggestions", headers=as_user(users["Erin"]))
    assert resp.json() == []


@pytest.mark.asyncio
async def test_dashboard_etag(client: AsyncClient, db_session, users):
    alice, bob = users["Alice"], users["Bob"]
    await make_contact(db_session, alice, bob)
    await make_ride(db_session, bob)
    await db_session.commit()

    first = await client.get("/api/v1/dashboard", headers=as_user(alice))
    assert first.status_code == 200
    assert len(first.json()["rides"]) == 1
    assert first.headers["cache-control"].startswith("no-store")
    etag = first.headers["etag"]

    unchanged = await client.get(
        "/api/v1/dashboard", headers={**as_user(alice), "If-None-Match": etag}
    )
    assert unchanged.status_code == 304
    assert unchanged.content == b""

    await client.post("/api/v1/rides", json=RIDE_BODY, headers=as_user(alice))
    changed = await client.get(
        "/api/v1/dashboard", headers={**as_user(alice), "If-None-Match": etag}
    )
    assert changed.status_code == 200
    assert changed.headers["etag"] != etag


@pytest.mark.asyncio
async def test_notifications_mark_read(client: AsyncClient, users):
    alice, bob = users["Alice"], users["Bob"]
    await client.post("/api/v1/contacts", json={"contact_id": bob.id}, headers=as_user(alice))

    inbox = (await client.get("/api/v1/notifications", headers=as_user(bob))).json()
    assert [n["type"] for n in inbox] == ["contactRequest"]
    assert inbox[0]["is_read"] is False

    resp = await client.post(
        "/api/v1/notifications/read",
        json={"notification_ids": [inbox[0]["id"]]},
        headers=as_user(bob),
    )
    assert resp.json() == {"updated": 1}

    unread = await client.get(
        "/api/v1/notifications", params={"unread_only": True}, headers=as_user(bob)
    )
    assert unread.json() == []


@pytest.mark.asyncio
async def test_user_search_stats_and_delete(client: AsyncClient, db_session, users):
    alice, bob = users["Alice"], users["Bob"]
    await make_contact(db_session, alice, bob, ContactStatus.PENDING)
    await make_ride(db_session, bob, accepter=alice, status=RideStatus.ACCEPTED)
    await db_session.commit()

    hits = (
        await client.get("/api/v1/users/search", params={"query": "bob"}, headers=as_user(alice))
    ).json()
    assert [(h["name"], h["contact_status"]) for h in hits] == [("Bob", "pending")]

    stats = await client.get(f"/api/v1/users/{alice.id}/stats", headers=as_user(bob))
    assert stats.json() == {"rides_offered": 0, "rides_accepted": 1}

    resp = await client.delete("/api/v1/users/me", headers=as_user(alice))
    assert resp.status_code == 204

    stats = await client.get(f"/api/v1/users/{alice.id}/stats", headers=as_user(bob))
    assert stats.status_code == 404
    assert (await client.get("/api/v1/contacts", headers=as_user(bob))).json() == []
