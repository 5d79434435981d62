"""
Starting list cache.

Starting lists change rarely compared to scores, so they are fetched once
per class/competition and reused until a "list published" or "next heat"
webhook (or an operator) invalidates them.
"""

import logging
import time
from dataclasses import dataclass

from .client import SportFengurClient

logger = logging.getLogger(__name__)


@dataclass
class CachedStartingList:
    data: list[dict]
    timestamp: float


def cache_key(class_id, competition_id) -> str:
    return f"{class_id}:{competition_id}"


class StartingListCache:
    """
    Keyed cache in front of the starting-list endpoint.

    Entries never expire by age; they are replaced on forced refresh
    and removed by invalidate() / clear_all().
    """

    def __init__(self, client: SportFengurClient):
        self.client = client
        self._entries: dict[str, CachedStartingList] = {}

    async def get_starting_list(
        self,
        class_id,
        competition_id,
        force_refresh: bool = False
    ) -> list[dict]:
        key = cache_key(class_id, competition_id)

        if not force_refresh and key in self._entries:
            cached = self._entries[key]
            logger.debug(f"Starting list {key} from cache ({len(cached.data)} riders)")
            return cached.data

        data = await self.client.get_starting_list(class_id, competition_id)
        raslisti = data.get("raslisti") if isinstance(data, dict) else None
        starting_list = raslisti if isinstance(raslisti, list) else []

        self._entries[key] = CachedStartingList(data=starting_list, timestamp=time.time())
        return starting_list

    def invalidate(self, class_id, competition_id) -> bool:
        """Drop one entry. Returns True if it existed."""
        key = cache_key(class_id, competition_id)
        if self._entries.pop(key, None) is None:
            return False
        logger.info(f"Starting list cache invalidated: {key}")
        return True

    def clear_all(self) -> int:
        """Drop every entry. Returns how many were removed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Starting list cache cleared ({count} entries)")
        return count

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
