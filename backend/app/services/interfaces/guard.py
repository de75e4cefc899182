"""
Event guard interface.
Allows swapping between in-process and distributed serialization of the
per-event critical section without touching the admission logic.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class EventGuard(ABC):
    """
    Mutual exclusion keyed by event.

    Implementations:
    - LocalEventGuard: asyncio locks, correct within a single process
    - RedisEventGuard: Redis lock with expiry, correct across processes

    Either way the database stays authoritative: the capacity aggregate is
    written with an optimistic version check, so a guard that fails open
    degrades to retries, never to overbooking.
    """

    name: str = "abstract"

    @abstractmethod
    def hold(self, key: str) -> AsyncContextManager[None]:
        """
        Enter the critical section for `key`.

        Raises:
            ConflictError: the section could not be entered within the
                configured wait time.
        """


def capacity_key(event_id: int) -> str:
    """Key for calls that read or change an event's confirmed count."""
    return f"event:{event_id}:capacity"


def lifecycle_key(event_id: int) -> str:
    """Key for state transitions and field edits of an event."""
    return f"event:{event_id}:lifecycle"
