import asyncio
from typing import List
from urllib.parse import quote, urlencode

from lazytorrentio.core.logger import logger
from lazytorrentio.scrapers.base import BaseScraper
from lazytorrentio.scrapers.models import ScraperQuery, Stream
from lazytorrentio.utils.formatting import format_stream_display
from lazytorrentio.utils.http_client import fetch_json

ADDON_PREFIX = "LT"
YTS_TRACKERS = (
    "udp://open.demonii.com:1337/announce",
    "udp://tracker.openbittorrent.com:80",
    "udp://tracker.coppersurfer.tk:6969",
    "udp://glotorrents.pw:6969/announce",
    "udp://tracker.opentrackr.org:1337/announce",
    "udp://torrent.gresille.org:80/announce",
    "udp://p4p.arenabg.com:1337",
    "udp://tracker.leechers-paradise.org:6969",
)


def ensure_api_root(base_url: str):
    return base_url if "/api/" in base_url else f"{base_url}/api/v2"


def build_list_url(base_url: str, imdb_id: str):
    api_root = ensure_api_root(base_url.rstrip("/"))
    params = urlencode({"query_term": imdb_id, "limit": 1})
    return f"{api_root}/list_movies.json?{params}"


def build_magnet(info_hash: str, name: str):
    trackers = "".join(f"&tr={quote(tracker, safe='')}" for tracker in YTS_TRACKERS)
    return f"magnet:?xt=urn:btih:{info_hash.lower()}&dn={quote(name)}{trackers}"


def _seeds(torrent: dict) -> int:
    seeds = torrent.get("seeds")
    return seeds if isinstance(seeds, int) else 0


def sort_by_seeds(torrents: List[dict]):
    # sorted() is stable, ties keep upstream order
    return sorted(torrents, key=_seeds, reverse=True)


class YTSScraper(BaseScraper):
    key = "yts"
    display_name = "YTS"

    async def _fetch_movies(self, base_url: str, imdb_id: str):
        response = await fetch_json(
            build_list_url(base_url, imdb_id),
            use_relay=self.use_relay,
            relay_session=self.relay_session(),
        )
        if not isinstance(response, dict):
            return []

        data = response.get("data") or {}
        return data.get("movies") or []

    async def scrape(self, query: ScraperQuery) -> List[Stream]:
        imdb_id = query.parsed.base_id
        responses = await asyncio.gather(
            *[self._fetch_movies(base_url, imdb_id) for base_url in query.mirrors],
            return_exceptions=True,
        )

        movies = []
        for result in responses:
            if isinstance(result, BaseException):
                logger.warning(f"YTS mirror failed for {imdb_id}: {result}")
                continue
            movies.extend(result)

        matching_movies = [
            movie
            for movie in movies
            if isinstance(movie, dict) and movie.get("imdb_code") == imdb_id
        ]

        seen = set()
        streams = []
        for movie in matching_movies:
            for torrent in sort_by_seeds(movie.get("torrents") or []):
                info_hash = torrent.get("hash")
                if not info_hash or info_hash in seen:
                    continue
                seen.add(info_hash)

                imdb_title = movie.get("title_long") or movie.get("title") or "YTS"
                quality = torrent.get("quality") or ""
                release_type = torrent.get("type") or ""
                torrent_name = f"{imdb_title} {quality} {release_type}".strip()
                seeders = torrent.get("seeds")
                if not isinstance(seeders, int) or seeders <= 0:
                    seeders = None
                size_bytes = torrent.get("size_bytes")
                if not isinstance(size_bytes, int) or size_bytes <= 0:
                    size_bytes = None

                display = format_stream_display(
                    addon_prefix=ADDON_PREFIX,
                    imdb_title=imdb_title,
                    torrent_name=torrent_name,
                    quality=" ".join(filter(None, [quality, release_type])),
                    seeders=seeders,
                    size_bytes=size_bytes,
                )

                streams.append(
                    Stream(
                        name=display["name"],
                        title=display["title"],
                        description=display["description"],
                        url=build_magnet(info_hash, torrent_name),
                        seeders=seeders,
                        behaviorHints={"videoSize": size_bytes} if size_bytes else None,
                    )
                )

        logger.log("SCRAPER", f"YTS found {len(streams)} streams for {imdb_id}")
        return streams
