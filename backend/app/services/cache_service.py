"""
Redis caching service for public event listings.

CACHING STRATEGY
================

What we cache:
  - Public listing responses of GET /events (JSON-serialized list)
  - Cache key pattern: "events:list:{search.cache_key()}"

Views and likes come from external collaborators and are the expensive
part of a listing, so a short TTL is enough to take most of the load.

Invalidation strategy:
  - On publish, reject or edit of an event: delete all listing keys
  - On request creation, confirmation or cancellation: delete all listing
    keys (confirmedRequests and onlyAvailable depend on them)
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

  All listing keys start with "events:list:" so we can SCAN and delete them.

Individual events are never cached: GET /events/{id} records a hit in the
statistics service on every call and must report live counts.
"""

import json
from typing import Optional

import redis.asyncio as redis

from app.infrastructure.redis_client import get_redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_PREFIX = "events:list:"


def _make_event_list_key(search_key: str) -> str:
    return f"{LIST_PREFIX}{search_key}"


async def get_cached_events(search_key: str) -> Optional[list]:
    """Retrieve a cached public listing."""
    client = await get_redis()
    if not client:
        return None

    key = _make_event_list_key(search_key)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_events(search_key: str, data: list) -> None:
    """Cache a public listing with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_event_list_key(search_key)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """
    Invalidate all cached public listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        keyspace = await client.info("keyspace")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        "keys": keyspace,
    }
