"""
Shared fixtures.

Every test builds its own component instances; nothing here touches
the module-level settings or app.
"""

import asyncio

import pytest

from ridefeed.features.sportfengur import SportFengurClient

BASE_URL = "https://sportfengur.test/api/v1"


class FakeClock:
    """Manual clock whose sleep() just advances time and records the wait."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float):
        self.now += seconds


class FakeFetcher:
    """
    Stands in for LeaderboardFetcher.

    Set `gate` to an asyncio.Event to hold cycles in flight until it is set.
    """

    def __init__(self, entries=None, error: Exception = None):
        self.entries = entries if entries is not None else []
        self.error = error
        self.gate: asyncio.Event = None
        self.calls: list[tuple] = []
        self.active = 0
        self.max_active = 0
        self.cancelled = 0

    async def fetch_leaderboard(self, event_id, class_id, competition_id, force_refresh=False):
        self.calls.append((event_id, class_id, competition_id, force_refresh))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            return self.entries
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.active -= 1


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_client(clock):
    """Factory for a SportFengurClient on the fake clock."""
    created = []

    def _make(**overrides):
        options = dict(
            base_url=BASE_URL,
            username="user",
            password="secret",
            locale="is",
            min_interval=0,
            max_retries=3,
            retry_base=0.75,
            cache_size=16,
            token_ttl=0,
            clock=clock,
            sleep=clock.sleep,
        )
        options.update(overrides)
        client = SportFengurClient(**options)
        created.append(client)
        return client

    return _make


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def raw_rider():
    """One joined starting-list + results entry as SportFengur returns it."""
    return {
        "keppandi_numer": 11,
        "vallarnumer": 3,
        "saeti": 1,
        "holl": 2,
        "hond": "V",
        "knapi_fullt_nafn": "Jóhanna Guðmundsdóttir",
        "knapi_nafn": "Jóhanna",
        "hross_fullt_nafn": "Sproti frá Sauðholti",
        "hross_litur": "Rauður",
        "rodun_litur_numer": 3,
        "rodun_litur": "Gulur",
        "adildarfelag_knapa": "Fákur",
        "adildarfelag_eiganda": "Sprettur",
        "faedingarnumer": "IS2015184512",
        "keppandi_medaleinkunn": "8.64",
        "einkunnir_domara": [
            {
                "domari_adaleinkunn": 8.6,
                "sundurlidun_einkunna": [
                    {"gangtegund": "Tölt frjáls hraði", "einkunn": 7.5},
                    {"gangtegund": "Brokk", "einkunn": 8.0},
                ],
            },
            {
                "domari_adaleinkunn": "8,8",
                "sundurlidun_einkunna": [
                    {"gangtegund": "Brokk", "einkunn": 8.5},
                ],
            },
            {
                "domari_adaleinkunn": 8.6,
                "sundurlidun_einkunna": [
                    {"gangtegund": "Tölt frjáls hraði", "einkunn": 8.0},
                ],
            },
            {"domari_adaleinkunn": 8.3},
            {"domari_adaleinkunn": 8.9},
        ],
    }
