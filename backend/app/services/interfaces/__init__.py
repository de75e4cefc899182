"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .guard import EventGuard, capacity_key, lifecycle_key
from .local_guard import LocalEventGuard

__all__ = ['EventGuard', 'LocalEventGuard', 'capacity_key', 'lifecycle_key']
