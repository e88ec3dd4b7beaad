import asyncio

import orjson
import pytest

from lazytorrentio.core.exceptions import BadRequestError
from lazytorrentio.scrapers.base import BaseScraper
from lazytorrentio.scrapers.manager import ScraperManager
from lazytorrentio.scrapers.models import ParsedIdentifier, Stream
from lazytorrentio.services.aggregation import (StreamAggregator,
                                                build_cache_key,
                                                merge_streams)
from lazytorrentio.services.cache import RedisClient

TTL = 604800


class FakeCache:
    def __init__(self, initial=None):
        self.store = dict(initial or {})
        self.gets = []
        self.sets = []

    async def get(self, key):
        self.gets.append(key)
        return self.store.get(key)

    async def set(self, key, value, ttl=None):
        self.sets.append((key, value, ttl))
        self.store[key] = value
        return True


class StaticScraper(BaseScraper):
    def __init__(self, key, urls, delay=0.0):
        super().__init__()
        self.key = key
        self.display_name = key.upper()
        self.urls = urls
        self.delay = delay
        self.calls = 0

    async def scrape(self, query):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return [Stream(name=self.display_name, title=url, url=url) for url in self.urls]


class FailingScraper(BaseScraper):
    def __init__(self, key):
        super().__init__()
        self.key = key
        self.display_name = key.upper()
        self.calls = 0

    async def scrape(self, query):
        self.calls += 1
        raise RuntimeError("mirror down")


def _aggregator(scrapers, cache=None):
    manager = ScraperManager(scrapers={s.key: s for s in scrapers}, mirrors={})
    return StreamAggregator(cache or FakeCache(), manager, TTL)


MOVIE = ParsedIdentifier(base_id="tt1")
EPISODE = ParsedIdentifier(base_id="tt2", season=1, episode=3)


def test_build_cache_key():
    assert build_cache_key("movie", MOVIE) == "stream:movie:tt1"
    assert build_cache_key("series", EPISODE) == "stream:series:tt2:1:3"
    assert build_cache_key("series", ParsedIdentifier(base_id="tt2")) == "stream:series:tt2"
    # season/episode never leak into movie keys
    assert build_cache_key("movie", EPISODE) == "stream:movie:tt2"

    with pytest.raises(BadRequestError):
        build_cache_key("channel", MOVIE)


def test_merge_streams_keeps_first_occurrence():
    results = [
        ("yts", [Stream(name="A", title="a", url="u1"), Stream(name="A", title="b", url="u2")]),
        ("torrentgalaxy", [Stream(name="B", title="c", url="u2"), Stream(name="B", title="d", url="u3")]),
    ]

    merged = merge_streams(results)

    assert [s["url"] for s in merged] == ["u1", "u2", "u3"]
    assert merged[1]["name"] == "A"


def test_results_follow_priority_order_not_completion_order():
    yts = StaticScraper("yts", ["u1", "u2"], delay=0.05)
    tgx = StaticScraper("torrentgalaxy", ["u2", "u3"])
    aggregator = _aggregator([yts, tgx])

    response = asyncio.run(aggregator.resolve_streams("movie", MOVIE))

    assert [s["url"] for s in response["streams"]] == ["u1", "u2", "u3"]
    assert response["streams"][1]["name"] == "YTS"


def test_partial_failure_keeps_other_results():
    cache = FakeCache()
    eztv = FailingScraper("eztv")
    tgx = StaticScraper("torrentgalaxy", ["u9"])

    response = asyncio.run(
        _aggregator([eztv, tgx], cache).resolve_streams("series", EPISODE)
    )

    assert [s["url"] for s in response["streams"]] == ["u9"]
    assert cache.sets[0][0] == "stream:series:tt2:1:3"


def test_all_failures_are_cached_as_empty():
    cache = FakeCache()
    aggregator = _aggregator([FailingScraper("yts"), FailingScraper("torrentgalaxy")], cache)

    response = asyncio.run(aggregator.resolve_streams("movie", MOVIE))

    assert response == {"streams": []}
    assert cache.sets == [("stream:movie:tt1", '{"streams":[]}', TTL)]


def test_cache_hit_skips_scraping():
    payload = orjson.dumps({"streams": [{"name": "A", "title": "a", "url": "u1"}]}).decode()
    cache = FakeCache({"stream:movie:tt1": payload})
    yts = StaticScraper("yts", ["other"])
    tgx = StaticScraper("torrentgalaxy", [])

    response = asyncio.run(_aggregator([yts, tgx], cache).resolve_streams("movie", MOVIE))

    assert response == {"streams": [{"name": "A", "title": "a", "url": "u1"}]}
    assert yts.calls == 0 and tgx.calls == 0
    assert cache.sets == []


def test_repeated_requests_are_served_from_cache():
    cache = FakeCache()
    yts = StaticScraper("yts", ["u1"])
    tgx = StaticScraper("torrentgalaxy", ["u2"])
    aggregator = _aggregator([yts, tgx], cache)

    first = asyncio.run(aggregator.resolve_streams("movie", MOVIE))
    second = asyncio.run(aggregator.resolve_streams("movie", MOVIE))

    assert orjson.dumps(first) == orjson.dumps(second)
    assert yts.calls == 1 and tgx.calls == 1
    assert len(cache.sets) == 1


def test_invalid_type_is_rejected_before_cache_lookup():
    cache = FakeCache()
    yts = StaticScraper("yts", ["u1"])

    with pytest.raises(BadRequestError, match="Invalid type"):
        asyncio.run(_aggregator([yts], cache).resolve_streams("tv", MOVIE))

    assert cache.gets == []
    assert yts.calls == 0


def test_movie_requests_skip_series_scrapers():
    eztv = StaticScraper("eztv", ["e1"])
    yts = StaticScraper("yts", ["y1"])
    tgx = StaticScraper("torrentgalaxy", ["t1"])

    response = asyncio.run(_aggregator([eztv, yts, tgx]).resolve_streams("movie", MOVIE))

    assert [s["url"] for s in response["streams"]] == ["y1", "t1"]
    assert eztv.calls == 0


def test_redis_client_without_url_is_a_no_op():
    client = RedisClient(None)

    assert asyncio.run(client.connect()) is False
    assert asyncio.run(client.get("stream:movie:tt1")) is None
    assert asyncio.run(client.set("stream:movie:tt1", "{}", TTL)) is False
    assert client.is_connected() is False


def test_aggregator_over_disabled_redis_still_scrapes():
    yts = StaticScraper("yts", ["u1"])
    tgx = StaticScraper("torrentgalaxy", [])
    aggregator = _aggregator([yts, tgx], RedisClient(None))

    first = asyncio.run(aggregator.resolve_streams("movie", MOVIE))
    second = asyncio.run(aggregator.resolve_streams("movie", MOVIE))

    assert first == second == {"streams": [{"name": "YTS", "title": "u1", "url": "u1"}]}
    assert yts.calls == 2
