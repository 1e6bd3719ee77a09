"""Tests for count, find_one and the paging helpers."""

import pytest

from crudhooks.services.app import Application
from crudhooks.services.helpers import count, find_all, find_one, for_each, for_each_page
from crudhooks.services.memory import MemoryService

SONGS = [{"id": i, "title": f"song {i}", "side": "a" if i <= 3 else "b"} for i in range(1, 6)]


@pytest.fixture
def songs():
    """Five songs served two per page."""
    app = Application()
    return app.use("api/songs", MemoryService(SONGS, {"paginate": {"default": 2, "max": 2}}))


@pytest.fixture
def unpaginated():
    return MemoryService(SONGS)


class TestCount:
    @pytest.mark.asyncio
    async def test_counts_all(self, songs):
        assert await count(songs) == 5

    @pytest.mark.asyncio
    async def test_counts_matching(self, songs):
        assert await count(songs, {"query": {"side": "b"}}) == 2

    @pytest.mark.asyncio
    async def test_unpaginated_service(self, unpaginated):
        assert await count(unpaginated, {"query": {"side": "a"}}) == 3


class TestFindOne:
    @pytest.mark.asyncio
    async def test_first_match(self, songs):
        song = await find_one(songs, {"query": {"side": "b"}})
        assert song["id"] == 4

    @pytest.mark.asyncio
    async def test_no_match(self, songs):
        assert await find_one(songs, {"query": {"side": "c"}}) is None


class TestFindAll:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrent", [False, True])
    async def test_walks_every_page(self, songs, concurrent):
        records = await find_all(songs, concurrent=concurrent)
        assert [song["id"] for song in records] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrent", [False, True])
    async def test_honours_limit_and_skip(self, songs, concurrent):
        params = {"query": {"$skip": 1, "$limit": 3}}
        records = await find_all(songs, params, concurrent=concurrent)
        assert [song["id"] for song in records] == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_sorted(self, songs):
        records = await find_all(songs, {"query": {"$sort": {"id": -1}}})
        assert [song["id"] for song in records] == [5, 4, 3, 2, 1]

    @pytest.mark.asyncio
    async def test_unpaginated_service(self, unpaginated):
        records = await find_all(unpaginated, {"query": {"side": "b"}}, concurrent=True)
        assert [song["id"] for song in records] == [4, 5]

    @pytest.mark.asyncio
    async def test_no_match(self, songs):
        assert await find_all(songs, {"query": {"side": "c"}}, concurrent=True) == []


class TestForEach:
    @pytest.mark.asyncio
    async def test_visits_every_record(self, songs):
        seen = []
        await for_each(songs, lambda song, index, total: seen.append((song["id"], index, total)))
        assert seen == [(1, 0, 5), (2, 1, 5), (3, 2, 5), (4, 3, 5), (5, 4, 5)]

    @pytest.mark.asyncio
    async def test_async_callback(self, songs):
        seen = []

        async def visit(song, index, total):
            seen.append(song["id"])

        await for_each(songs, visit, {"query": {"side": "a"}})
        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_pages(self, songs):
        pages = []
        await for_each_page(
            songs,
            lambda data, page_index, total: pages.append(([song["id"] for song in data], page_index, total)),
        )
        assert pages == [([1, 2], 0, 5), ([3, 4], 1, 5), ([5], 2, 5)]
