"""
Tests for compilation curation and public compilation reads.
"""

from datetime import datetime, timezone, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient


@pytest_asyncio.fixture
async def event_ids(client: AsyncClient) -> list[int]:
    """Three events by one initiator; the first two are published."""
    category = (await client.post("/admin/categories", json={"name": "Festivals"})).json()["id"]
    owner = (await client.post(
        "/admin/users", json={"name": "curator", "email": "curator@example.com"}
    )).json()["id"]

    ids = []
    for day in (3, 4, 5):
        response = await client.post(f"/users/{owner}/events", json={
            "title": f"Festival day {day}",
            "annotation": "Open air stages across the whole city park",
            "description": "Food trucks, three stages and a late night programme",
            "category": category,
            "eventDate": (datetime.now(timezone.utc) + timedelta(days=day)).isoformat(),
            "location": {"lat": 41.39, "lon": 2.17},
        })
        ids.append(response.json()["id"])
    for event_id in ids[:2]:
        await client.patch(f"/admin/events/{event_id}", json={"stateAction": "PUBLISH_EVENT"})
    return ids


@pytest.mark.asyncio
async def test_create_compilation(client: AsyncClient, event_ids, stats_recorder):
    stats_recorder.views[f"/events/{event_ids[0]}"] = 6

    response = await client.post("/admin/compilations", json={
        "title": "Summer picks",
        "pinned": True,
        "events": [event_ids[1], event_ids[0], event_ids[1]],
    })
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Summer picks"
    assert data["pinned"] is True
    assert [e["id"] for e in data["events"]] == sorted(event_ids[:2])
    assert data["events"][0]["views"] == 6

    response = await client.get(f"/compilations/{data['id']}")
    assert response.status_code == 200
    assert response.json() == data


@pytest.mark.asyncio
async def test_create_compilation_validation(client: AsyncClient, event_ids):
    response = await client.post("/admin/compilations", json={"title": "   "})
    assert response.status_code == 422

    response = await client.post("/admin/compilations", json={"title": "x" * 51})
    assert response.status_code == 422

    response = await client.post("/admin/compilations", json={"title": "Ghosts", "events": [999]})
    assert response.status_code == 404

    response = await client.post("/admin/compilations", json={"title": "Empty"})
    assert response.status_code == 201
    assert response.json()["events"] == []
    assert response.json()["pinned"] is False


@pytest.mark.asyncio
async def test_update_compilation(client: AsyncClient, event_ids):
    compilation = (await client.post("/admin/compilations", json={
        "title": "Weekend", "events": event_ids[:2],
    })).json()

    response = await client.patch(f"/admin/compilations/{compilation['id']}", json={"pinned": True})
    assert response.status_code == 200
    assert response.json()["title"] == "Weekend"
    assert response.json()["pinned"] is True
    assert len(response.json()["events"]) == 2

    response = await client.patch(f"/admin/compilations/{compilation['id']}", json={
        "title": "Long weekend", "events": [event_ids[2]],
    })
    assert response.json()["title"] == "Long weekend"
    assert [e["id"] for e in response.json()["events"]] == [event_ids[2]]

    # an empty list clears the compilation
    response = await client.patch(f"/admin/compilations/{compilation['id']}", json={"events": []})
    assert response.json()["events"] == []

    response = await client.patch("/admin/compilations/999", json={"pinned": False})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_and_delete_compilations(client: AsyncClient, event_ids):
    pinned = (await client.post("/admin/compilations", json={
        "title": "Front page", "pinned": True, "events": [event_ids[0]],
    })).json()["id"]
    other = (await client.post("/admin/compilations", json={
        "title": "Archive", "events": [event_ids[0], event_ids[1]],
    })).json()["id"]

    response = await client.get("/compilations")
    assert [c["id"] for c in response.json()] == [pinned, other]

    response = await client.get("/compilations", params={"pinned": "true"})
    assert [c["id"] for c in response.json()] == [pinned]

    response = await client.get("/compilations", params={"from": 1, "size": 1})
    assert [c["id"] for c in response.json()] == [other]

    response = await client.delete(f"/admin/compilations/{pinned}")
    assert response.status_code == 204
    assert (await client.get(f"/compilations/{pinned}")).status_code == 404
    assert (await client.delete(f"/admin/compilations/{pinned}")).status_code == 404

    # the shared event stays in the remaining compilation
    response = await client.get(f"/compilations/{other}")
    assert [e["id"] for e in response.json()["events"]] == [event_ids[0], event_ids[1]]
