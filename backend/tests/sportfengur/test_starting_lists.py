"""
Tests for the starting list cache.
"""

import pytest
import respx

from ridefeed.features.sportfengur import StartingListCache
from ridefeed.features.sportfengur.starting_lists import cache_key

RASLISTI = {"raslisti": [{"keppandi_numer": 11}, {"keppandi_numer": 12}]}


@pytest.fixture
def client(make_client):
    return make_client()


class TestStartingListCache:

    @pytest.mark.asyncio
    async def test_repeated_reads_issue_one_request(self, client):
        cache = StartingListCache(client)
        with respx.mock(base_url=client.base_url, assert_all_called=False) as mock:
            mock.post("/login").respond(200, json={"token": "t"})
            route = mock.get("/is/startinglist/789/1").respond(200, json=RASLISTI)

            first = await cache.get_starting_list(789, 1)
            second = await cache.get_starting_list(789, 1)

            assert route.call_count == 1
            assert first == second == RASLISTI["raslisti"]
        await client.close()

    @pytest.mark.asyncio
    async def test_force_refresh_refetches(self, client):
        cache = StartingListCache(client)
        with respx.mock(base_url=client.base_url, assert_all_called=False) as mock:
            mock.post("/login").respond(200, json={"token": "t"})
            route = mock.get("/is/startinglist/789/1").respond(200, json=RASLISTI)

            await cache.get_starting_list(789, 1)
            await cache.get_starting_list(789, 1)
            assert route.call_count == 1

            await cache.get_starting_list(789, 1, force_refresh=True)
            assert route.call_count == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_raslisti_yields_empty_list(self, client):
        cache = StartingListCache(client)
        with respx.mock(base_url=client.base_url, assert_all_called=False) as mock:
            mock.post("/login").respond(200, json={"token": "t"})
            mock.get("/is/startinglist/789/2").respond(200, json={"raslisti": None})

            assert await cache.get_starting_list(789, 2) == []
            assert cache_key(789, 2) in cache
        await client.close()

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self, client):
        cache = StartingListCache(client)
        with respx.mock(base_url=client.base_url, assert_all_called=False) as mock:
            mock.post("/login").respond(200, json={"token": "t"})
            route = mock.get("/is/startinglist/789/1").respond(200, json=RASLISTI)
            mock.get("/is/startinglist/789/2").respond(200, json=RASLISTI)

            await cache.get_starting_list(789, 1)
            await cache.get_starting_list(789, 2)

            assert cache.invalidate(789, 1) is True
            assert cache.invalidate(789, 1) is False
            assert len(cache) == 1

            await cache.get_starting_list(789, 1)
            assert route.call_count == 2

            assert cache.clear_all() == 2
            assert len(cache) == 0
        await client.close()
