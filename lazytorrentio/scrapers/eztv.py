import asyncio
import math
import re
from typing import List, Optional, Tuple
from urllib.parse import urlencode

from lazytorrentio.core.logger import logger
from lazytorrentio.scrapers.base import BaseScraper
from lazytorrentio.scrapers.models import ParsedIdentifier, ScraperQuery, Stream
from lazytorrentio.utils.formatting import build_behavior_hints
from lazytorrentio.utils.http_client import fetch_json

DEFAULT_LIMIT = 30
MAX_PAGES = 50
PAGE_CONCURRENCY = 5

# tried in order, first match wins
EPISODE_PATTERNS = (
    re.compile(r"Season\s*0?(\d{1,2})\s*Episode\s*0?(\d{1,2})", re.IGNORECASE),
    re.compile(r"S\s*0?(\d{1,2})\s*E\s*0?(\d{1,2})", re.IGNORECASE),
    re.compile(r"(\d{1,2})x(\d{1,2})", re.IGNORECASE),
)


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def build_api_url(base_url: str, imdb_id: str, page: int):
    params = urlencode({"imdb_id": imdb_id, "page": page})
    return f"{base_url.rstrip('/')}/api/get-torrents?{params}"


def parse_episode_from_text(text: str) -> Optional[Tuple[int, int]]:
    normalized = " ".join(text.split())
    for pattern in EPISODE_PATTERNS:
        match = pattern.search(normalized)
        if match:
            return int(match.group(1)), int(match.group(2))
    return None


def matches_episode(torrent: dict, season: Optional[int], episode: Optional[int]):
    if not season or not episode:
        return True

    torrent_season = _to_int(torrent.get("season"))
    torrent_episode = _to_int(torrent.get("episode"))
    if torrent_season > 0 and torrent_episode > 0:
        return torrent_season == season and torrent_episode == episode

    text = torrent.get("title") or torrent.get("filename") or ""
    parsed = parse_episode_from_text(text) if text else None
    if not parsed:
        return False
    return parsed == (season, episode)


def format_title(torrent: dict):
    base_title = torrent.get("title") or torrent.get("filename") or "EZTV"
    seeds = _to_int(torrent.get("seeds"))
    size_bytes = _to_int(torrent.get("size_bytes"))

    parts = []
    if seeds:
        parts.append(f"S:{seeds}")
    if size_bytes:
        parts.append(f"{size_bytes / 1024**3:.2f} GiB")

    if not parts:
        return base_title
    return f"{base_title} ({' • '.join(parts)})"


class EZTVScraper(BaseScraper):
    key = "eztv"
    display_name = "EZTV"

    async def _fetch_page(self, base_url: str, imdb_id: str, page: int):
        url = build_api_url(base_url, imdb_id, page)
        data = await fetch_json(
            url, use_relay=self.use_relay, relay_session=self.relay_session()
        )
        if not isinstance(data, dict):
            return None

        logger.debug(
            f"EZTV {url} returned {len(data.get('torrents') or [])} torrents (page={data.get('page')} limit={data.get('limit')} total={data.get('torrents_count')})"
        )
        return data

    async def fetch_all_torrents(self, base_url: str, imdb_id: str) -> List[dict]:
        torrents = []
        first_response = await self._fetch_page(base_url, imdb_id, 1)
        if not first_response:
            return torrents

        first_batch = first_response.get("torrents") or []
        torrents.extend(first_batch)

        expected_total = first_response.get("torrents_count")
        if not isinstance(expected_total, int) or isinstance(expected_total, bool):
            expected_total = None

        page_limit = first_response.get("limit")
        if not isinstance(page_limit, int) or page_limit <= 0:
            page_limit = DEFAULT_LIMIT

        if (
            len(first_batch) == 0
            or (expected_total is not None and len(torrents) >= expected_total)
            or len(first_batch) < page_limit
        ):
            return torrents

        total_pages = (
            math.ceil(expected_total / page_limit) if expected_total else MAX_PAGES
        )
        last_page = min(total_pages, MAX_PAGES)
        page_numbers = list(range(2, last_page + 1))

        for i in range(0, len(page_numbers), PAGE_CONCURRENCY):
            batch_pages = page_numbers[i : i + PAGE_CONCURRENCY]
            responses = await asyncio.gather(
                *[self._fetch_page(base_url, imdb_id, page) for page in batch_pages]
            )

            for response in responses:
                batch = (response or {}).get("torrents") or []
                torrents.extend(batch)
                # a short or failed page ends this batch only
                if len(batch) < page_limit:
                    break

            if expected_total is not None and len(torrents) >= expected_total:
                break

        logger.log(
            "SCRAPER",
            f"EZTV fetched {len(torrents)} torrents for {imdb_id} across up to {last_page} page(s) from {base_url}",
        )
        return torrents

    async def scrape(self, query: ScraperQuery) -> List[Stream]:
        parsed: ParsedIdentifier = query.parsed
        imdb_digits = parsed.base_id.removeprefix("tt")

        tasks = [
            self.fetch_all_torrents(base_url, imdb_id)
            for base_url in query.mirrors
            for imdb_id in (imdb_digits, f"tt{imdb_digits}")
        ]
        responses = await asyncio.gather(*tasks, return_exceptions=True)

        torrents = []
        for result in responses:
            if isinstance(result, BaseException):
                logger.warning(f"EZTV mirror failed for {parsed.base_id}: {result}")
                continue
            torrents.extend(result)

        seen = set()
        streams = []
        for torrent in torrents:
            if not isinstance(torrent, dict):
                continue
            if not matches_episode(torrent, parsed.season, parsed.episode):
                continue

            url = torrent.get("magnet_url") or torrent.get("torrent_url")
            if not url or url in seen:
                continue
            seen.add(url)

            seeds = _to_int(torrent.get("seeds"))
            streams.append(
                Stream(
                    name=self.display_name,
                    title=format_title(torrent),
                    url=url,
                    seeders=seeds if seeds > 0 else None,
                    behaviorHints=build_behavior_hints(
                        torrent.get("filename") or torrent.get("title"),
                        _to_int(torrent.get("size_bytes")),
                    ),
                )
            )

        logger.log(
            "SCRAPER",
            f"EZTV found {len(streams)} streams for {parsed.base_id} (season={parsed.season} episode={parsed.episode})",
        )
        return streams
