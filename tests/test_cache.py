import asyncio

from app.data.content import SAMPLE_CATALOG
from app.services.cache import CatalogSource, ContentCache
from app.services.storage import ContentStorage

from conftest import CountingFetcher, FakeClock


def test_second_read_inside_ttl_is_cached(cache: ContentCache, fetcher: CountingFetcher, clock: FakeClock) -> None:
    async def scenario():
        first = await cache.fetch()
        clock.advance(300 - 0.001)
        second = await cache.fetch()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.source is CatalogSource.FRESH
    assert second.source is CatalogSource.CACHED
    assert second.catalog is first.catalog
    assert fetcher.calls == 1


def test_read_after_ttl_fetches_exactly_once_more(cache: ContentCache, fetcher: CountingFetcher, clock: FakeClock) -> None:
    async def scenario():
        await cache.get_catalog()
        clock.advance(300 + 0.001)
        await cache.get_catalog()
        await cache.get_catalog()

    asyncio.run(scenario())
    assert fetcher.calls == 2
    assert cache.last_source is CatalogSource.CACHED


def test_failed_fetch_serves_sample_for_whole_window(cache: ContentCache, fetcher: CountingFetcher, clock: FakeClock) -> None:
    fetcher.fail = True

    async def scenario():
        first = await cache.fetch()
        clock.advance(100)
        second = await cache.fetch()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.source is CatalogSource.SAMPLE
    assert first.catalog == SAMPLE_CATALOG
    assert first.catalog is not SAMPLE_CATALOG
    assert second.source is CatalogSource.CACHED
    assert fetcher.calls == 1
    assert cache.last_fetch == 1000.0


def test_sample_expires_and_real_data_replaces_it(cache: ContentCache, fetcher: CountingFetcher, clock: FakeClock, catalog: list[dict]) -> None:
    fetcher.fail = True

    async def scenario():
        await cache.get_catalog()
        fetcher.fail = False
        clock.advance(301)
        return await cache.get_catalog()

    assert asyncio.run(scenario()) == catalog


def test_summaries_survive_catalog_expiry_until_invalidate(
    cache: ContentCache, fetcher: CountingFetcher, clock: FakeClock
) -> None:
    async def scenario():
        first = await cache.get_summaries()
        clock.advance(10_000)
        second = await cache.get_summaries()
        return first, second

    first, second = asyncio.run(scenario())

    assert second is first
    assert fetcher.calls == 1
    assert [s.slug for s in first] == ["животные", "цвета-и-формы", "пусто"]


def test_invalidate_clears_everything(cache: ContentCache, fetcher: CountingFetcher) -> None:
    async def scenario():
        await cache.get_summaries()
        cache.invalidate()
        assert cache.catalog is None
        assert cache.summaries is None
        assert cache.last_fetch is None
        await cache.get_summaries()

    asyncio.run(scenario())
    assert fetcher.calls == 2


def test_summaries_reflect_ownership_at_build_time(cache: ContentCache, storage: ContentStorage) -> None:
    storage.add_purchase("цвета-и-формы")

    summaries = asyncio.run(cache.get_summaries())
    by_slug = {s.slug: s for s in summaries}

    assert by_slug["животные"].is_free is True
    assert by_slug["животные"].is_purchased is True
    assert by_slug["цвета-и-формы"].is_free is False
    assert by_slug["цвета-и-формы"].is_purchased is True
    assert by_slug["пусто"].is_purchased is False
    assert by_slug["пусто"].questionsCount == 0


def test_cold_concurrent_reads_may_each_fetch(fetcher: CountingFetcher, clock: FakeClock) -> None:
    cache = ContentCache(fetcher, ttl=300, clock=clock)

    async def scenario():
        await asyncio.gather(cache.get_catalog(), cache.get_catalog())

    asyncio.run(scenario())
    assert fetcher.calls == 2
