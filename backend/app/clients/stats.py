"""
Statistics service client: records endpoint hits and reads view counts.
"""

import re
from datetime import datetime
from typing import Optional

import httpx

from app.core.clock import as_utc, utcnow
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_collaborator_error

logger = get_logger(__name__)

STATS_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
# Views are counted from this point when no lower bound is given
EPOCH = datetime(2000, 1, 1)
EVENT_URI = re.compile(r"^/events/(\d+)$")


def event_uri(event_id: int) -> str:
    return f"/events/{event_id}"


class StatsClient:
    def __init__(self, base_url: str, app_id: str, timeout: float = 2.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.app_id = app_id
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def record_hit(self, uri: str, ip: str) -> None:
        payload = {
            "app": self.app_id,
            "uri": uri,
            "ip": ip,
            "timestamp": utcnow().strftime(STATS_TIME_FORMAT),
        }
        try:
            response = await self._client.post("/hit", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            record_collaborator_error("stats")
            logger.error("stats_hit_failed", uri=uri, error=str(e))

    async def view_counts(
        self,
        event_ids: list[int],
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        unique: bool = True,
    ) -> dict[int, int]:
        """Views per event id; events without hits map to 0."""
        views = {event_id: 0 for event_id in event_ids}
        if not event_ids:
            return views

        start = as_utc(since) if since else as_utc(EPOCH)
        end = as_utc(until) if until else utcnow()
        params = {
            "start": start.strftime(STATS_TIME_FORMAT),
            "end": end.strftime(STATS_TIME_FORMAT),
            "uris": [event_uri(event_id) for event_id in event_ids],
            "unique": str(unique).lower(),
        }
        try:
            response = await self._client.get("/stats", params=params)
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            record_collaborator_error("stats")
            logger.error("stats_fetch_failed", event_ids=event_ids, error=str(e))
            return views

        by_uri = {event_uri(event_id): event_id for event_id in event_ids}
        for row in rows:
            event_id = by_uri.get(row.get("uri"))
            if event_id is not None:
                views[event_id] += int(row.get("hits", 0))
        return views

    async def view_count(self, event_id: int, since: Optional[datetime] = None,
                         until: Optional[datetime] = None) -> int:
        return (await self.view_counts([event_id], since, until))[event_id]

    async def view_ranking(self, unique: bool = True) -> list[tuple[int, int]]:
        """
        (event id, views) for every event page with recorded hits, most
        viewed first. Listing URIs and other paths are skipped.
        """
        params = {
            "start": as_utc(EPOCH).strftime(STATS_TIME_FORMAT),
            "end": utcnow().strftime(STATS_TIME_FORMAT),
            "unique": str(unique).lower(),
        }
        try:
            response = await self._client.get("/stats", params=params)
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            record_collaborator_error("stats")
            logger.error("stats_ranking_failed", error=str(e))
            return []

        views: dict[int, int] = {}
        for row in rows:
            match = EVENT_URI.match(row.get("uri") or "")
            if match:
                event_id = int(match.group(1))
                views[event_id] = views.get(event_id, 0) + int(row.get("hits", 0))
        return sorted(views.items(), key=lambda kv: -kv[1])

    async def aclose(self) -> None:
        await self._client.aclose()


_stats_client: Optional[StatsClient] = None


def get_stats_client() -> StatsClient:
    global _stats_client
    if _stats_client is None:
        settings = get_settings()
        _stats_client = StatsClient(
            settings.STATS_SERVICE_URL,
            app_id=settings.APP_ID,
            timeout=settings.COLLABORATOR_TIMEOUT,
        )
    return _stats_client


async def close_stats_client() -> None:
    global _stats_client
    if _stats_client is not None:
        await _stats_client.aclose()
        _stats_client = None
