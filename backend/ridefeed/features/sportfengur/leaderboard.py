"""Leaderboard fetcher: starting list joined with current judge scores."""

import logging

from .client import SportFengurClient
from .starting_lists import StartingListCache

logger = logging.getLogger(__name__)


def _as_list(data, key: str) -> list:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, list) else []


class LeaderboardFetcher:
    """
    Produces raw (pre-normalization) leaderboard entries.

    The starting list comes through the cache; results are always
    fetched fresh. Riders without a result yet keep empty score fields.
    """

    def __init__(self, client: SportFengurClient, starting_lists: StartingListCache):
        self.client = client
        self.starting_lists = starting_lists

    async def fetch_results(self, class_id, competition_id) -> list[dict]:
        data = await self.client.get_results(class_id, competition_id)
        return _as_list(data, "einkunnir")

    async def fetch_leaderboard(
        self,
        event_id,
        class_id,
        competition_id,
        force_refresh: bool = False
    ) -> list[dict]:
        """
        Fetch starting list and results, then join them on keppandi_numer.

        Any fetch failure propagates; no partial leaderboard is returned.
        """
        starting_list = await self.starting_lists.get_starting_list(
            class_id, competition_id, force_refresh
        )
        scores = await self.fetch_results(class_id, competition_id)

        logger.info(
            f"Fetched event {event_id} class {class_id}/{competition_id}: "
            f"{len(starting_list)} riders, {len(scores)} results"
        )

        scores_by_rider = {
            score["keppandi_numer"]: score
            for score in scores
            if isinstance(score, dict) and score.get("keppandi_numer") is not None
        }

        combined = []
        for rider in starting_list:
            if not isinstance(rider, dict):
                continue
            score = scores_by_rider.get(rider.get("keppandi_numer"), {})
            combined.append({
                **rider,
                "einkunnir_domara": score.get("einkunnir_domara") or [],
                "keppandi_medaleinkunn": score.get("keppandi_medaleinkunn"),
                "saeti": score.get("saeti"),
            })
        return combined
