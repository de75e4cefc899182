"""
Tests for the event guards and the optimistic capacity write.
"""

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.exceptions import ConflictError, OptimisticLockError
from app.services.capacity_service import commit_confirmed
from app.services.event_service import get_event
from app.services.interfaces.guard import capacity_key, lifecycle_key
from app.services.interfaces.local_guard import LocalEventGuard
from app.services.redis_guard import RedisEventGuard


@pytest.mark.asyncio
async def test_local_guard_serializes_same_key():
    guard = LocalEventGuard(wait_timeout=1.0)
    inside = 0
    peak = 0

    async def critical():
        nonlocal inside, peak
        async with guard.hold(capacity_key(1)):
            inside += 1
            peak = max(peak, inside)
            await asyncio.sleep(0.01)
            inside -= 1

    await asyncio.gather(*(critical() for _ in range(5)))
    assert peak == 1
    assert guard.active_keys() == []


@pytest.mark.asyncio
async def test_local_guard_keys_are_independent():
    guard = LocalEventGuard(wait_timeout=0.05)
    async with guard.hold(capacity_key(1)):
        async with guard.hold(capacity_key(2)):
            async with guard.hold(lifecycle_key(1)):
                assert len(guard.active_keys()) == 3


@pytest.mark.asyncio
async def test_local_guard_wait_timeout():
    guard = LocalEventGuard(wait_timeout=0.05)
    async with guard.hold(capacity_key(1)):
        with pytest.raises(ConflictError):
            async with guard.hold(capacity_key(1)):
                pass
    assert guard.active_keys() == []


class _BrokenLock:
    async def acquire(self):
        raise RedisConnectionError("connection refused")


class _BrokenRedis:
    def lock(self, *args, **kwargs):
        return _BrokenLock()


@pytest.mark.asyncio
async def test_redis_guard_falls_back_to_local(monkeypatch):
    async def broken_client():
        return _BrokenRedis()

    monkeypatch.setattr("app.services.redis_guard.get_redis", broken_client)
    guard = RedisEventGuard(lock_timeout=1.0, wait_timeout=0.05)

    async with guard.hold(capacity_key(1)):
        with pytest.raises(ConflictError):
            async with guard.hold(capacity_key(1)):
                pass


@pytest.mark.asyncio
async def test_redis_guard_without_redis(monkeypatch):
    async def no_client():
        return None

    monkeypatch.setattr("app.services.redis_guard.get_redis", no_client)
    guard = RedisEventGuard(lock_timeout=1.0, wait_timeout=0.05)
    async with guard.hold(capacity_key(1)):
        pass


@pytest.mark.asyncio
async def test_commit_confirmed_detects_stale_version(session_factory, make_event):
    event = await make_event(participant_limit=5, request_moderation=False)

    async with session_factory() as first, session_factory() as second:
        seen_first = await get_event(first, event.id)
        seen_second = await get_event(second, event.id)

        await commit_confirmed(first, seen_first, 1)
        await first.commit()
        assert seen_first.version == event.version + 1

        with pytest.raises(OptimisticLockError):
            await commit_confirmed(second, seen_second, 1)


@pytest.mark.asyncio
async def test_commit_confirmed_respects_limit(db_session, make_event):
    event = await make_event(participant_limit=2, request_moderation=False)
    loaded = await get_event(db_session, event.id, for_update=True)

    with pytest.raises(OptimisticLockError):
        await commit_confirmed(db_session, loaded, 3)
