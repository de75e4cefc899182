"""
Event guard factory.
Configures which serialization strategy protects the event critical sections.
"""

from typing import Optional

from app.services.interfaces.guard import EventGuard
from app.services.interfaces.local_guard import LocalEventGuard
from app.services.redis_guard import RedisEventGuard
from app.core.config import get_settings


def build_event_guard() -> EventGuard:
    """
    Build the configured event guard.

    Strategy selection:
    - local (default): in-process asyncio locks, single worker
    - redis: distributed lock shared by every worker

    Selected via the EVENT_GUARD env var.
    """
    settings = get_settings()

    if settings.EVENT_GUARD == "redis":
        return RedisEventGuard(
            lock_timeout=settings.EVENT_LOCK_TIMEOUT,
            wait_timeout=settings.EVENT_LOCK_WAIT,
        )
    return LocalEventGuard(wait_timeout=settings.EVENT_LOCK_WAIT)


# Singleton instance
_guard: Optional[EventGuard] = None


def get_event_guard() -> EventGuard:
    """Get event guard singleton."""
    global _guard
    if _guard is None:
        _guard = build_event_guard()
    return _guard


def set_event_guard(guard: Optional[EventGuard]) -> None:
    """Replace the singleton (tests, alternative deployments)."""
    global _guard
    _guard = guard
