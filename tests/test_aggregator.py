import asyncio

import pytest

from mediahub_app.metadata.models import CandidateItem, MediaType, ProviderType, SearchKind
from mediahub_app.metadata.providers.base import BaseMediaProvider
from mediahub_app.search.aggregator import SearchAggregator, parse_search_kind
from mediahub_app.services.errors import ValidationError


class FakeProvider(BaseMediaProvider):
    """Provider returning canned items, an error, or hanging."""

    def __init__(self, provider_id, kinds, items=None, error=None, delay=0.0):
        super().__init__()
        self.id = provider_id
        self.media_kinds = frozenset(kinds)
        self.items = items or []
        self.error = error
        self.delay = delay
        self.calls = []
        self.closed = False

    async def search(self, query):
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.items)

    async def close(self):
        self.closed = True


def _item(source_type, source_id, title, media_type=MediaType.MOVIE, **fields):
    return CandidateItem(
        source_type=source_type,
        source_id=source_id,
        source_url=f"https://example.com/{source_id}",
        media_type=media_type,
        title_zh=title,
        year=fields.pop('year', "2010"),
        **fields,
    )


def test_parse_search_kind():
    assert parse_search_kind("movie") == SearchKind.MOVIE
    assert parse_search_kind(SearchKind.ALL) == SearchKind.ALL
    with pytest.raises(ValidationError):
        parse_search_kind("music")


def test_kind_selects_provider_subset():
    movie = FakeProvider("tmdb", {MediaType.MOVIE})
    anime = FakeProvider("bgm", {MediaType.ANIME})
    aggregator = SearchAggregator(providers=[movie, anime], deadline=1)

    assert aggregator.select_providers(SearchKind.MOVIE) == [movie]
    assert aggregator.select_providers(SearchKind.ANIME) == [anime]
    assert aggregator.select_providers(SearchKind.ALL) == [movie, anime]


def test_empty_query_calls_nothing():
    provider = FakeProvider("tmdb", {MediaType.MOVIE})
    aggregator = SearchAggregator(providers=[provider], deadline=1)

    assert asyncio.run(aggregator.search("   ", "movie")) == []
    assert provider.calls == []


def test_unknown_kind_is_rejected():
    aggregator = SearchAggregator(providers=[], deadline=1)
    with pytest.raises(ValidationError):
        asyncio.run(aggregator.search("Inception", "podcast"))


def test_cross_provider_duplicates_are_merged():
    tmdb = FakeProvider("tmdb", {MediaType.MOVIE}, items=[
        _item(ProviderType.TMDB, "27205", "盗梦空间", poster_url="https://img/t.jpg", rating_imdb=8.4),
    ])
    douban = FakeProvider("douban", {MediaType.MOVIE}, items=[
        _item(ProviderType.DOUBAN, "3541415", "盗梦空间", rating_douban=9.4),
        _item(ProviderType.DOUBAN, "1", "盗梦空间：幕后", year="2011"),
    ])
    aggregator = SearchAggregator(providers=[tmdb, douban], deadline=1)

    results = asyncio.run(aggregator.search("盗梦空间", "movie"))

    assert len(results) == 2
    assert results[0].identity == (ProviderType.TMDB, "27205")
    assert results[0].rating_douban == 9.4
    assert results[0].match_count == 2
    assert tmdb.closed and douban.closed


def test_failing_provider_contributes_nothing():
    broken = FakeProvider("maoyan", {MediaType.MOVIE}, error=RuntimeError("HTTP 500"))
    working = FakeProvider("douban", {MediaType.MOVIE}, items=[
        _item(ProviderType.DOUBAN, "3541415", "盗梦空间"),
    ])
    aggregator = SearchAggregator(providers=[broken, working], deadline=1)

    results = asyncio.run(aggregator.search("Inception", "movie"))

    assert [item.source_id for item in results] == ["3541415"]
    assert broken.closed


def test_timed_out_provider_does_not_block_others():
    slow = FakeProvider("tmdb", {MediaType.MOVIE}, delay=5, items=[
        _item(ProviderType.TMDB, "27205", "盗梦空间"),
    ])
    fast = FakeProvider("maoyan", {MediaType.MOVIE}, items=[
        _item(ProviderType.MAOYAN, "246", "盗梦空间", rating_maoyan=9.0),
    ])
    aggregator = SearchAggregator(providers=[slow, fast], deadline=0.2)

    results = asyncio.run(aggregator.search("Inception", "movie"))

    assert len(results) == 1
    assert results[0].identity == (ProviderType.MAOYAN, "246")


def test_provider_contribution_is_capped():
    flood = FakeProvider("douban", {MediaType.MOVIE}, items=[
        _item(ProviderType.DOUBAN, str(n), f"电影{n}") for n in range(20)
    ])
    aggregator = SearchAggregator(providers=[flood], deadline=1)

    results = asyncio.run(aggregator.search("电影", "movie"))

    assert len(results) == 8


def test_strict_kinds_from_environment(monkeypatch):
    monkeypatch.setenv("SEARCH_STRICT_KINDS", "true")
    monkeypatch.setenv("SEARCH_ADAPTER_DEADLINE", "3.5")
    aggregator = SearchAggregator(providers=[])

    assert aggregator.strict_kinds is True
    assert aggregator.deadline == 3.5
