"""
Likes service client. Only counts and the top-liked ranking are consumed here.
"""

from typing import Optional

import httpx

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_collaborator_error

logger = get_logger(__name__)


class LikesClient:
    def __init__(self, base_url: str, timeout: float = 2.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def like_counts(self, event_ids: list[int]) -> dict[int, int]:
        likes = {event_id: 0 for event_id in event_ids}
        if not event_ids:
            return likes
        try:
            response = await self._client.get(
                "/internal/likes/events", params={"eventIdList": event_ids}
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            record_collaborator_error("likes")
            logger.error("likes_fetch_failed", event_ids=event_ids, error=str(e))
            return likes

        # JSON object keys arrive as strings
        for key, count in payload.items():
            event_id = int(key)
            if event_id in likes:
                likes[event_id] = int(count or 0)
        return likes

    async def like_count(self, event_id: int) -> int:
        return (await self.like_counts([event_id]))[event_id]

    async def top_liked_events(self, count: int) -> dict[int, int]:
        """Most liked event ids with their like counts, most liked first."""
        try:
            response = await self._client.get("/internal/likes/events/top", params={"count": count})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            record_collaborator_error("likes")
            logger.error("likes_top_fetch_failed", count=count, error=str(e))
            return {}

        ranked = sorted(((int(k), int(v or 0)) for k, v in payload.items()), key=lambda kv: -kv[1])
        return dict(ranked[:count])

    async def aclose(self) -> None:
        await self._client.aclose()


_likes_client: Optional[LikesClient] = None


def get_likes_client() -> LikesClient:
    global _likes_client
    if _likes_client is None:
        settings = get_settings()
        _likes_client = LikesClient(settings.LIKES_SERVICE_URL, timeout=settings.COLLABORATOR_TIMEOUT)
    return _likes_client


async def close_likes_client() -> None:
    global _likes_client
    if _likes_client is not None:
        await _likes_client.aclose()
        _likes_client = None
