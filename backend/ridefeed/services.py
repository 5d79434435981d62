"""
Service container.

Builds every long-lived component from Settings once per application,
so tests can build their own isolated set instead of resetting globals.
"""

import logging
from dataclasses import dataclass

from ridefeed.config import Settings
from ridefeed.features.leaderboard import CompetitionStateStore, RefreshCoordinator
from ridefeed.features.sportfengur import (
    LeaderboardFetcher,
    SportFengurClient,
    StartingListCache,
)
from ridefeed.features.webhooks import CompetitionResolver, WebhookIngest

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    client: SportFengurClient
    starting_lists: StartingListCache
    fetcher: LeaderboardFetcher
    state: CompetitionStateStore
    coordinator: RefreshCoordinator
    ingest: WebhookIngest

    async def aclose(self):
        """Stop timers and in-flight refreshes, close the HTTP client."""
        await self.coordinator.close()
        await self.client.close()


def build_services(settings: Settings) -> Services:
    client = SportFengurClient(
        base_url=settings.sportfengur_base_url,
        username=settings.sportfengur_username,
        password=settings.sportfengur_password,
        locale=settings.sportfengur_locale,
        min_interval=settings.min_fetch_interval_ms / 1000,
        max_retries=settings.fetch_max_retries,
        retry_base=settings.fetch_retry_base_ms / 1000,
        cache_size=settings.response_cache_size,
        token_ttl=settings.token_ttl_seconds,
        timeout=settings.request_timeout_seconds,
    )
    starting_lists = StartingListCache(client)
    fetcher = LeaderboardFetcher(client, starting_lists)
    state = CompetitionStateStore()
    coordinator = RefreshCoordinator(
        fetcher,
        state,
        debounce=settings.refresh_debounce_ms / 1000,
        timeout=settings.refresh_timeout_ms / 1000,
    )
    ingest = WebhookIngest(
        coordinator,
        CompetitionResolver(client),
        dedupe_ttl=settings.dedupe_ttl_ms / 1000,
        event_id_filter=settings.event_id_filter,
        history_limit=settings.webhook_history_limit,
    )

    if not settings.sportfengur_username or not settings.sportfengur_password:
        logger.warning("SportFengur credentials not set, refreshes will fail")

    return Services(
        settings=settings,
        client=client,
        starting_lists=starting_lists,
        fetcher=fetcher,
        state=state,
        coordinator=coordinator,
        ingest=ingest,
    )
