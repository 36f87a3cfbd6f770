"""
tests/test_content.py
Tests for courts, announcements, events and reviews.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Announcement, Court, Review, User
from tests.conftest import auth_headers


# ── Courts ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_courts_pagination(client: AsyncClient, db: AsyncSession):
    for i in range(8):
        db.add(Court(court_type=f"Court {i}", price=10 + i, slots=["08:00-09:00"]))
    await db.commit()

    first = await client.get("/courts")
    assert first.status_code == 200
    data = first.json()
    assert data["total"] == 8
    assert data["page"] == 1
    assert data["page_size"] == 6
    assert data["total_pages"] == 2
    assert len(data["items"]) == 6

    second = await client.get("/courts?page=2&size=6")
    assert len(second.json()["items"]) == 2


@pytest.mark.asyncio
async def test_featured_courts(client: AsyncClient, db: AsyncSession):
    db.add_all([
        Court(court_type="Centre Court", price=50, featured=True),
        Court(court_type="Court 7", price=10),
    ])
    await db.commit()

    response = await client.get("/courts/featured")
    assert [c["court_type"] for c in response.json()] == ["Centre Court"]


@pytest.mark.asyncio
async def test_court_admin_crud(client: AsyncClient, admin_user: User):
    headers = auth_headers(admin_user)
    created = await client.post(
        "/courts",
        headers=headers,
        json={"court_type": "Padel", "price": 25, "slots": ["10:00-11:00"]},
    )
    assert created.status_code == 201
    court_id = created.json()["id"]

    updated = await client.patch(f"/courts/{court_id}", headers=headers, json={"featured": True})
    assert updated.status_code == 200
    assert updated.json()["featured"] is True
    assert updated.json()["price"] == 25

    deleted = await client.delete(f"/courts/{court_id}", headers=headers)
    assert deleted.status_code == 200

    missing = await client.delete(f"/courts/{court_id}", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_court_create_forbidden_for_user(client: AsyncClient, user: User):
    response = await client.post(
        "/courts", headers=auth_headers(user), json={"court_type": "Padel", "price": 25}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_court_invalid_id(client: AsyncClient, admin_user: User):
    response = await client.patch("/courts/xyz", headers=auth_headers(admin_user), json={"price": 1})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_court_update_rejects_null_price(
    client: AsyncClient, admin_user: User, db: AsyncSession
):
    court = Court(court_type="Padel", price=25, slots=["10:00-11:00"])
    db.add(court)
    await db.commit()

    response = await client.patch(
        f"/courts/{court.id}", headers=auth_headers(admin_user), json={"price": None}
    )
    assert response.status_code == 422

    cleared = await client.patch(
        f"/courts/{court.id}", headers=auth_headers(admin_user), json={"image_url": None}
    )
    assert cleared.status_code == 200
    assert cleared.json()["price"] == 25


# ── Announcements ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_announcements_newest_first(client: AsyncClient, db: AsyncSession):
    now = datetime.now(timezone.utc)
    db.add_all([
        Announcement(title="Old", description="o", date=now - timedelta(days=2)),
        Announcement(title="New", description="n", date=now),
    ])
    await db.commit()

    response = await client.get("/announcements")
    assert [a["title"] for a in response.json()] == ["New", "Old"]


@pytest.mark.asyncio
async def test_announcement_admin_crud(client: AsyncClient, admin_user: User):
    headers = auth_headers(admin_user)
    created = await client.post(
        "/announcements", headers=headers, json={"title": "Closed Monday", "description": "Resurfacing"}
    )
    assert created.status_code == 201
    assert created.json()["date"]
    announcement_id = created.json()["id"]

    updated = await client.patch(
        f"/announcements/{announcement_id}", headers=headers, json={"title": "Closed Tuesday"}
    )
    assert updated.json()["title"] == "Closed Tuesday"
    assert updated.json()["description"] == "Resurfacing"

    deleted = await client.delete(f"/announcements/{announcement_id}", headers=headers)
    assert deleted.status_code == 200
    assert (await client.get("/announcements")).json() == []


@pytest.mark.asyncio
async def test_announcement_update_rejects_null_title(
    client: AsyncClient, admin_user: User, db: AsyncSession
):
    announcement = Announcement(title="Closed Monday", description="Resurfacing")
    db.add(announcement)
    await db.commit()

    response = await client.patch(
        f"/announcements/{announcement.id}", headers=auth_headers(admin_user), json={"title": None}
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Validation failed"

    await db.refresh(announcement)
    assert announcement.title == "Closed Monday"


@pytest.mark.asyncio
async def test_announcement_delete_missing(client: AsyncClient, admin_user: User):
    response = await client.delete(f"/announcements/{uuid.uuid4()}", headers=auth_headers(admin_user))
    assert response.status_code == 404


# ── Events ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_event_create_and_update(client: AsyncClient, admin_user: User):
    headers = auth_headers(admin_user)
    created = await client.post(
        "/events",
        headers=headers,
        json={"title": "Club Open", "location": "Court 1", "event_date": "2025-07-01T10:00:00Z"},
    )
    assert created.status_code == 201

    updated = await client.patch(
        f"/events/{created.json()['id']}", headers=headers, json={"location": "Court 2"}
    )
    assert updated.status_code == 200
    assert updated.json()["location"] == "Court 2"
    assert updated.json()["title"] == "Club Open"

    listing = await client.get("/events")
    assert len(listing.json()) == 1


@pytest.mark.asyncio
async def test_event_create_forbidden_for_member(client: AsyncClient, member_user: User):
    response = await client.post("/events", headers=auth_headers(member_user), json={"title": "X"})
    assert response.status_code == 403


# ── Reviews ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_review(client: AsyncClient, user: User):
    response = await client.post(
        "/reviews",
        headers=auth_headers(user),
        json={"name": user.name, "rating": 5, "comment": "Great courts"},
    )
    assert response.status_code == 201
    assert response.json()["rating"] == 5


@pytest.mark.asyncio
async def test_create_review_requires_auth(client: AsyncClient):
    response = await client.post("/reviews", json={"name": "Anon", "rating": 4})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_review_rating_out_of_range(client: AsyncClient, user: User):
    response = await client.post(
        "/reviews", headers=auth_headers(user), json={"name": "Pat", "rating": 6}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reviews_newest_first(client: AsyncClient, db: AsyncSession):
    now = datetime.now(timezone.utc)
    db.add_all([
        Review(name="A", rating=3, date=now - timedelta(days=1)),
        Review(name="B", rating=4, date=now),
    ])
    await db.commit()

    response = await client.get("/reviews")
    assert [r["name"] for r in response.json()] == ["B", "A"]
