"""
Tests for the user directory and category endpoints.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient


async def _user(client: AsyncClient, name: str) -> int:
    response = await client.post("/admin/users", json={"name": name, "email": f"{name}@example.com"})
    return response.json()["id"]


async def _event(client: AsyncClient, owner: int, category: int) -> int:
    response = await client.post(f"/users/{owner}/events", json={
        "title": "Book Club",
        "annotation": "Monthly discussion of a chosen novel",
        "description": "Bring the book and your notes, tea is on the house",
        "category": category,
        "eventDate": (datetime.now(timezone.utc) + timedelta(days=5)).isoformat(),
        "location": {"lat": 52.52, "lon": 13.40},
    })
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.asyncio
async def test_create_and_list_users(client: AsyncClient):
    ids = []
    for name in ("alice", "bob", "carol"):
        response = await client.post("/admin/users", json={"name": name, "email": f"{name}@example.com"})
        assert response.status_code == 201
        ids.append(response.json()["id"])

    response = await client.get("/admin/users")
    assert [u["id"] for u in response.json()] == ids

    response = await client.get("/admin/users", params={"ids": ids[1:], "from": 1, "size": 5})
    assert [u["name"] for u in response.json()] == ["carol"]


@pytest.mark.asyncio
async def test_duplicate_email(client: AsyncClient):
    payload = {"name": "alice", "email": "alice@example.com"}
    await client.post("/admin/users", json=payload)

    response = await client.post("/admin/users", json=payload)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invalid_email(client: AsyncClient):
    response = await client.post("/admin/users", json={"name": "alice", "email": "not-an-email"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient):
    user_id = (await client.post(
        "/admin/users", json={"name": "alice", "email": "alice@example.com"}
    )).json()["id"]

    response = await client.delete(f"/admin/users/{user_id}")
    assert response.status_code == 204

    response = await client.delete(f"/admin/users/{user_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_categories(client: AsyncClient):
    response = await client.post("/admin/categories", json={"name": "Theatre"})
    assert response.status_code == 201
    category_id = response.json()["id"]

    response = await client.post("/admin/categories", json={"name": "Theatre"})
    assert response.status_code == 409

    response = await client.get(f"/categories/{category_id}")
    assert response.json() == {"id": category_id, "name": "Theatre"}

    response = await client.get("/categories")
    assert [c["name"] for c in response.json()] == ["Theatre"]

    response = await client.get("/categories/999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_user_with_history_conflicts(client: AsyncClient):
    category = (await client.post("/admin/categories", json={"name": "Books"})).json()["id"]
    owner = await _user(client, "host")
    guest = await _user(client, "guest")
    event_id = await _event(client, owner, category)
    await client.patch(f"/admin/events/{event_id}", json={"stateAction": "PUBLISH_EVENT"})
    response = await client.post(f"/users/{guest}/requests", params={"eventId": event_id})
    assert response.status_code == 201

    # the guest cancels, but the canceled row is still history
    request_id = response.json()["id"]
    await client.patch(f"/users/{guest}/requests/{request_id}/cancel")

    for user_id in (owner, guest):
        response = await client.delete(f"/admin/users/{user_id}")
        assert response.status_code == 409
        assert response.json()["status"] == "CONFLICT"

    response = await client.get(f"/users/{guest}/requests")
    assert [r["status"] for r in response.json()] == ["CANCELED"]


@pytest.mark.asyncio
async def test_rename_category(client: AsyncClient):
    theatre = (await client.post("/admin/categories", json={"name": "Theatre"})).json()["id"]
    await client.post("/admin/categories", json={"name": "Cinema"})

    response = await client.patch(f"/admin/categories/{theatre}", json={"name": "Opera"})
    assert response.status_code == 200
    assert response.json() == {"id": theatre, "name": "Opera"}

    response = await client.patch(f"/admin/categories/{theatre}", json={"name": "Opera"})
    assert response.status_code == 200

    response = await client.patch(f"/admin/categories/{theatre}", json={"name": "Cinema"})
    assert response.status_code == 409

    response = await client.patch("/admin/categories/999", json={"name": "Ballet"})
    assert response.status_code == 404

    response = await client.patch(f"/admin/categories/{theatre}", json={"name": ""})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_category(client: AsyncClient):
    used = (await client.post("/admin/categories", json={"name": "Books"})).json()["id"]
    unused = (await client.post("/admin/categories", json={"name": "Chess"})).json()["id"]
    await _event(client, await _user(client, "host"), used)

    response = await client.delete(f"/admin/categories/{used}")
    assert response.status_code == 409
    assert (await client.get(f"/categories/{used}")).status_code == 200

    response = await client.delete(f"/admin/categories/{unused}")
    assert response.status_code == 204
    assert (await client.get(f"/categories/{unused}")).status_code == 404

    response = await client.delete(f"/admin/categories/{unused}")
    assert response.status_code == 404
