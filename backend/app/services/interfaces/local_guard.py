"""
In-process event guard built on asyncio locks.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from app.core.exceptions import ConflictError
from app.core.metrics import guard_wait
from app.services.interfaces.guard import EventGuard


class LocalEventGuard(EventGuard):
    """
    One asyncio.Lock per key, dropped again once nobody holds or waits for it.

    Use when:
    - a single worker process serves the API
    - tests and local development
    """

    name = "local"

    def __init__(self, wait_timeout: float):
        self.wait_timeout = wait_timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._checkout(key)
        started = time.perf_counter()
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.wait_timeout)
        except asyncio.TimeoutError:
            self._checkin(key)
            raise ConflictError("The event is busy processing other requests, try again later")
        except BaseException:
            self._checkin(key)
            raise
        guard_wait.labels(guard=self.name).observe(time.perf_counter() - started)

        try:
            yield
        finally:
            lock.release()
            self._checkin(key)

    def active_keys(self) -> list[str]:
        return list(self._locks)
