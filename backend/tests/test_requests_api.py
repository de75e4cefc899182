"""
Tests for participation request endpoints, including the admission flow.
"""

from datetime import datetime, timezone, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient


async def _user(client: AsyncClient, name: str) -> int:
    response = await client.post("/admin/users", json={"name": name, "email": f"{name}@example.com"})
    return response.json()["id"]


@pytest_asyncio.fixture
async def published_event(client: AsyncClient):
    """Factory: a published event owned by a fresh initiator."""
    category = (await client.post("/admin/categories", json={"name": "Workshops"})).json()["id"]
    owner = await _user(client, "host")

    async def _make(limit: int, moderation: bool = True) -> tuple[int, int]:
        response = await client.post(f"/users/{owner}/events", json={
            "title": "Pottery Workshop",
            "annotation": "Hands-on introduction to wheel throwing",
            "description": "Clay, tools and aprons are provided by the studio",
            "category": category,
            "eventDate": (datetime.now(timezone.utc) + timedelta(days=10)).isoformat(),
            "location": {"lat": 48.85, "lon": 2.35},
            "participantLimit": limit,
            "requestModeration": moderation,
        })
        event_id = response.json()["id"]
        await client.patch(f"/admin/events/{event_id}", json={"stateAction": "PUBLISH_EVENT"})
        return owner, event_id

    return _make


@pytest.mark.asyncio
async def test_create_request(client: AsyncClient, published_event):
    owner, event_id = await published_event(limit=5)
    guest = await _user(client, "guest")

    response = await client.post(f"/users/{guest}/requests", params={"eventId": event_id})
    assert response.status_code == 201
    data = response.json()
    assert data["event"] == event_id
    assert data["requester"] == guest
    assert data["status"] == "PENDING"

    response = await client.get(f"/users/{guest}/requests")
    assert [r["id"] for r in response.json()] == [data["id"]]


@pytest.mark.asyncio
async def test_duplicate_request_returns_409(client: AsyncClient, published_event):
    _, event_id = await published_event(limit=5)
    guest = await _user(client, "guest")

    await client.post(f"/users/{guest}/requests", params={"eventId": event_id})
    response = await client.post(f"/users/{guest}/requests", params={"eventId": event_id})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_initiator_request_returns_409(client: AsyncClient, published_event):
    owner, event_id = await published_event(limit=5)
    response = await client.post(f"/users/{owner}/requests", params={"eventId": event_id})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_unlimited_event_auto_confirms(client: AsyncClient, published_event):
    _, event_id = await published_event(limit=0)

    for name in ("ann", "bob", "cid"):
        guest = await _user(client, name)
        response = await client.post(f"/users/{guest}/requests", params={"eventId": event_id})
        assert response.json()["status"] == "CONFIRMED"

    response = await client.get(f"/events/{event_id}")
    assert response.json()["confirmedRequests"] == 3


@pytest.mark.asyncio
async def test_admission_sellout_via_api(client: AsyncClient, published_event):
    owner, event_id = await published_event(limit=2)
    request_ids = []
    for name in ("ann", "bob", "cid"):
        guest = await _user(client, name)
        response = await client.post(f"/users/{guest}/requests", params={"eventId": event_id})
        request_ids.append(response.json()["id"])

    response = await client.patch(
        f"/users/{owner}/events/{event_id}/requests",
        json={"requestIds": request_ids, "status": "CONFIRMED"},
    )
    assert response.status_code == 409

    response = await client.get(f"/users/{owner}/events/{event_id}/requests")
    assert [r["status"] for r in response.json()] == ["CONFIRMED", "CONFIRMED", "CANCELED"]

    response = await client.get(f"/events/{event_id}")
    assert response.json()["confirmedRequests"] == 2


@pytest.mark.asyncio
async def test_admission_confirm_and_reject(client: AsyncClient, published_event):
    owner, event_id = await published_event(limit=5)
    request_ids = []
    for name in ("ann", "bob"):
        guest = await _user(client, name)
        response = await client.post(f"/users/{guest}/requests", params={"eventId": event_id})
        request_ids.append(response.json()["id"])

    response = await client.patch(
        f"/users/{owner}/events/{event_id}/requests",
        json={"requestIds": [request_ids[0]], "status": "CONFIRMED"},
    )
    assert response.status_code == 200
    assert [r["id"] for r in response.json()["confirmedRequests"]] == [request_ids[0]]

    response = await client.patch(
        f"/users/{owner}/events/{event_id}/requests",
        json={"requestIds": [request_ids[1]], "status": "REJECTED"},
    )
    body = response.json()
    assert [r["id"] for r in body["confirmedRequests"]] == [request_ids[0]]
    assert [r["id"] for r in body["rejectedRequests"]] == [request_ids[1]]


@pytest.mark.asyncio
async def test_admission_rejects_other_statuses(client: AsyncClient, published_event):
    owner, event_id = await published_event(limit=5)
    response = await client.patch(
        f"/users/{owner}/events/{event_id}/requests",
        json={"requestIds": [1], "status": "CANCELED"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_admission_by_stranger(client: AsyncClient, published_event):
    _, event_id = await published_event(limit=5)
    guest = await _user(client, "guest")
    request_id = (await client.post(f"/users/{guest}/requests", params={"eventId": event_id})).json()["id"]

    response = await client.patch(
        f"/users/{guest}/events/{event_id}/requests",
        json={"requestIds": [request_id], "status": "CONFIRMED"},
    )
    assert response.status_code == 403

    response = await client.get(f"/users/{guest}/events/{event_id}/requests")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_request(client: AsyncClient, published_event):
    _, event_id = await published_event(limit=1, moderation=False)
    guest = await _user(client, "guest")
    request_id = (await client.post(f"/users/{guest}/requests", params={"eventId": event_id})).json()["id"]

    response = await client.patch(f"/users/{guest}/requests/{request_id}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELED"

    response = await client.get(f"/events/{event_id}")
    assert response.json()["confirmedRequests"] == 0

    # The freed place can be taken again
    other = await _user(client, "other")
    response = await client.post(f"/users/{other}/requests", params={"eventId": event_id})
    assert response.json()["status"] == "CONFIRMED"


@pytest.mark.asyncio
async def test_cancel_foreign_request(client: AsyncClient, published_event):
    _, event_id = await published_event(limit=5)
    guest = await _user(client, "guest")
    other = await _user(client, "other")
    request_id = (await client.post(f"/users/{guest}/requests", params={"eventId": event_id})).json()["id"]

    response = await client.patch(f"/users/{other}/requests/{request_id}/cancel")
    assert response.status_code == 403
