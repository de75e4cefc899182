"""
HTTP clients for the statistics and likes services.

Both are read-side collaborators: their values are never transactionally
consistent with events and requests, so failures degrade to zero counts.
"""

from .likes import LikesClient, close_likes_client, get_likes_client
from .stats import StatsClient, close_stats_client, get_stats_client

__all__ = [
    "LikesClient",
    "StatsClient",
    "close_likes_client",
    "close_stats_client",
    "get_likes_client",
    "get_stats_client",
]
