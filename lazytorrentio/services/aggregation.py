import orjson

from lazytorrentio.core.exceptions import BadRequestError
from lazytorrentio.core.logger import logger
from lazytorrentio.scrapers.manager import SCRAPERS_BY_TYPE
from lazytorrentio.scrapers.models import ParsedIdentifier

SUPPORTED_TYPES = tuple(SCRAPERS_BY_TYPE)


def build_cache_key(media_type: str, parsed: ParsedIdentifier):
    if media_type == "movie":
        return f"stream:movie:{parsed.base_id}"

    if media_type != "series":
        raise BadRequestError("Invalid type")

    if parsed.season and parsed.episode:
        return f"stream:series:{parsed.base_id}:{parsed.season}:{parsed.episode}"

    return f"stream:series:{parsed.base_id}"


def merge_streams(results):
    """Concatenate scraper outputs in order, keeping the first stream seen per url."""
    seen = set()
    streams = []
    for _, scraper_streams in results:
        for stream in scraper_streams:
            if stream.url in seen:
                continue
            seen.add(stream.url)
            streams.append(stream.to_payload())
    return streams


class StreamAggregator:
    def __init__(self, cache, scraper_manager, ttl: int):
        self.cache = cache
        self.scraper_manager = scraper_manager
        self.ttl = ttl

    async def resolve_streams(self, media_type: str, parsed: ParsedIdentifier):
        if media_type not in SUPPORTED_TYPES:
            raise BadRequestError("Invalid type")

        key = build_cache_key(media_type, parsed)
        cached = await self.cache.get(key)
        if cached:
            logger.log("CACHE", f"Hit: {key}")
            return orjson.loads(cached)

        logger.log("CACHE", f"Miss: {key}")
        results = await self.scraper_manager.scrape_all(media_type, parsed)
        response = {"streams": merge_streams(results)}

        logger.log(
            "STREAM",
            f"{len(response['streams'])} streams for {key} from {', '.join(name for name, _ in results) or 'no scraper'}",
        )

        # empty results are cached too so failing mirrors are not hammered
        await self.cache.set(key, orjson.dumps(response).decode(), self.ttl)
        return response
