import pytest

from wallet_analyzer.providers.pagination import DEFAULT_MAX_PAGES, paginate_cursor


@pytest.mark.asyncio
async def test_follows_cursor_until_exhausted():
    pages = {None: ([1, 2], "b"), "b": ([3], "c"), "c": ([4], None)}
    seen = []

    async def fetch(cursor):
        seen.append(cursor)
        return pages[cursor]

    assert await paginate_cursor(fetch) == [1, 2, 3, 4]
    assert seen == [None, "b", "c"]


@pytest.mark.asyncio
async def test_endless_cursor_stops_at_page_ceiling():
    calls = 0

    async def fetch(cursor):
        nonlocal calls
        calls += 1
        return [calls], f"cursor-{calls}"

    items = await paginate_cursor(fetch)

    assert calls == DEFAULT_MAX_PAGES == 25
    assert items == list(range(1, 26))


@pytest.mark.asyncio
async def test_repeated_cursor_stops_early():
    calls = []

    async def fetch(cursor):
        calls.append(cursor)
        return ["x"], "same"

    items = await paginate_cursor(fetch, max_pages=10)

    assert calls == [None, "same"]
    assert items == ["x", "x"]


@pytest.mark.asyncio
async def test_empty_pages_are_tolerated():
    async def fetch(cursor):
        return None, None

    assert await paginate_cursor(fetch) == []
