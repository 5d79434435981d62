"""
SportFengur integration module.

Usage:
    from ridefeed.features.sportfengur import SportFengurClient, LeaderboardFetcher

Components:
- SportFengurClient: API client (login, rate limit, retries, stale fallback)
- StartingListCache: starting lists keyed by class/competition
- LeaderboardFetcher: starting list + results joined per rider
"""

from .client import (
    SportFengurClient,
    SportFengurError,
    SportFengurAuthError,
    SportFengurHTTPError,
    RequestGate,
    ResponseCache,
)
from .starting_lists import StartingListCache, CachedStartingList
from .leaderboard import LeaderboardFetcher

__all__ = [
    # Client
    "SportFengurClient",
    "SportFengurError",
    "SportFengurAuthError",
    "SportFengurHTTPError",
    "RequestGate",
    "ResponseCache",
    # Caching / fetching
    "StartingListCache",
    "CachedStartingList",
    "LeaderboardFetcher",
]
