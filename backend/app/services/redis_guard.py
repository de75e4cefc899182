"""
Distributed event guard for multi-process deployments.
Implements EventGuard using a Redis lock.

Circuit Breaker Pattern:
  On Redis failure the guard "fails over" to the in-process lock.
  Database remains authoritative - the capacity aggregate is written with an
  optimistic version check, so two processes that both fell back still
  cannot confirm past the participant limit; the loser retries.

  The lock carries an expiry (EVENT_LOCK_TIMEOUT) so a crashed holder never
  blocks an event forever.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.exceptions import LockError, RedisError

from app.core.exceptions import ConflictError
from app.core.logging import get_logger
from app.core.metrics import guard_wait, redis_connection_errors
from app.infrastructure.redis_client import get_redis
from app.services.interfaces.guard import EventGuard
from app.services.interfaces.local_guard import LocalEventGuard

logger = get_logger(__name__)

LOCK_PREFIX = "ewm:guard:"


class RedisEventGuard(EventGuard):
    """
    Redis-based event guard.

    Use when:
    - several API workers or hosts serve the same database
    - flash-sale style contention on a single event
    """

    name = "redis"

    def __init__(self, lock_timeout: float, wait_timeout: float):
        self.lock_timeout = lock_timeout
        self.wait_timeout = wait_timeout
        self._fallback = LocalEventGuard(wait_timeout)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        client = await get_redis()
        lock = None
        if client is not None:
            lock = client.lock(
                LOCK_PREFIX + key,
                timeout=self.lock_timeout,
                blocking_timeout=self.wait_timeout,
            )
            started = time.perf_counter()
            try:
                acquired = await lock.acquire()
            except RedisError as e:
                redis_connection_errors.inc()
                logger.warning("event_guard_fallback", key=key, error=str(e))
                lock = None
            else:
                if not acquired:
                    raise ConflictError("The event is busy processing other requests, try again later")
                guard_wait.labels(guard=self.name).observe(time.perf_counter() - started)

        if lock is None:
            async with self._fallback.hold(key):
                yield
            return

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired while we were inside; the version check caught any overlap
                logger.warning("event_guard_lock_expired", key=key, timeout=self.lock_timeout)
            except RedisError as e:
                redis_connection_errors.inc()
                logger.warning("event_guard_release_failed", key=key, error=str(e))
