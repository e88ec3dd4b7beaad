import asyncio
from typing import Awaitable, Callable, List, Optional
from urllib.parse import urlencode, urljoin

from selectolax.lexbor import LexborHTMLParser

from lazytorrentio.core.logger import logger
from lazytorrentio.scrapers.base import BaseScraper
from lazytorrentio.scrapers.models import (ParsedIdentifier, ScraperQuery,
                                           Stream, TitleBasics)
from lazytorrentio.utils.formatting import (build_behavior_hints,
                                            format_episode_tag, parse_number,
                                            parse_size_to_bytes)
from lazytorrentio.utils.http_client import fetch_text

MAX_RESULTS = 20
SERIES_TITLE_TYPES = {"tvseries", "tvminiseries", "tvepisode"}


def build_search_url(base_url: str, query: str, page: int):
    params = urlencode({"q": query, "category": "lmsearch", "page": page})
    return f"{base_url.rstrip('/')}/lmsearch?{params}"


def _count(text: str) -> int:
    value = parse_number(text)
    return int(value) if value > 0 else 0


def _cell_text(tds, index: int):
    return tds[index].text(strip=True) if len(tds) > index else ""


def parse_search_results(html: str, base_url: str, limit: int) -> List[dict]:
    parser = LexborHTMLParser(html)
    results = []
    for row in parser.css(".table-list-wrap tbody tr"):
        if len(results) >= limit:
            break

        anchor = row.css_first("td .tt-name a")
        if anchor is None:
            continue

        href = anchor.attributes.get("href")
        if not href:
            continue

        tds = row.css("td")
        results.append(
            {
                "name": anchor.text(strip=True),
                "url": urljoin(f"{base_url.rstrip('/')}/", href),
                "size": _cell_text(tds, 2),
                "seeders": _count(_cell_text(tds, 3)),
                "leechers": _count(_cell_text(tds, 4)),
            }
        )

    return results


def parse_torrent_details(html: str, page_url: str):
    parser = LexborHTMLParser(html)

    magnet = parser.css_first("a[href^='magnet:?']")
    magnet_uri = magnet.attributes.get("href") if magnet else None

    download = parser.css_first("a[href$='.torrent']")
    download_href = download.attributes.get("href") if download else None
    torrent_download = urljoin(page_url, download_href) if download_href else None

    return magnet_uri or torrent_download


def is_series_title_type(title_type: Optional[str]):
    return bool(title_type) and title_type.lower() in SERIES_TITLE_TYPES


def format_title(link: dict):
    base_title = link["name"] or "TGx"
    parts = []
    if link["seeders"]:
        parts.append(f"S:{link['seeders']}")
    if link["leechers"]:
        parts.append(f"L:{link['leechers']}")
    if link["size"]:
        parts.append(link["size"])

    if not parts:
        return base_title
    return f"{base_title} ({' • '.join(parts)})"


def dedupe_links(links: List[dict]):
    seen = set()
    results = []
    for link in links:
        if link["url"] in seen:
            continue
        seen.add(link["url"])
        results.append(link)
    return results


class TorrentGalaxyScraper(BaseScraper):
    key = "torrentgalaxy"
    display_name = "TGx"

    def __init__(
        self,
        get_title_basics: Callable[[str], Awaitable[Optional[TitleBasics]]],
        relay=None,
    ):
        super().__init__(relay)
        self.get_title_basics = get_title_basics

    async def _fetch_html(self, url: str):
        return await fetch_text(
            url, use_relay=self.use_relay, relay_session=self.relay_session()
        )

    async def build_query(self, parsed: ParsedIdentifier):
        basics = await self.get_title_basics(parsed.base_id)
        base_title = (
            (basics.primary_title or basics.original_title) if basics else None
        ) or parsed.base_id

        episode_tag = format_episode_tag(parsed.season, parsed.episode)
        is_series = is_series_title_type(basics.title_type if basics else None) or bool(
            episode_tag
        )

        if is_series and episode_tag:
            return f"{base_title} {episode_tag}"
        return base_title

    async def search(self, base_url: str, query: str, limit: int):
        results = []
        page = 1
        while len(results) < limit:
            html = await self._fetch_html(build_search_url(base_url, query, page))
            if not html:
                break

            batch = parse_search_results(html, base_url, limit - len(results))
            if not batch:
                break

            results.extend(batch)
            page += 1

        return results

    async def fetch_details(self, url: str):
        html = await self._fetch_html(url)
        if not html:
            return None
        return parse_torrent_details(html, url)

    async def scrape(self, query: ScraperQuery) -> List[Stream]:
        search_query = await self.build_query(query.parsed)

        links = []
        for base_url in query.mirrors:
            if len(links) >= MAX_RESULTS:
                break
            links.extend(
                await self.search(base_url, search_query, MAX_RESULTS - len(links))
            )

        # detail pages are deduplicated here, resolved links only by the aggregator
        unique_links = dedupe_links(links)
        details = await asyncio.gather(
            *[self.fetch_details(link["url"]) for link in unique_links],
            return_exceptions=True,
        )

        streams = []
        for link, url in zip(unique_links, details):
            if isinstance(url, BaseException) or not url:
                continue

            streams.append(
                Stream(
                    name=self.display_name,
                    title=format_title(link),
                    url=url,
                    seeders=link["seeders"] or None,
                    behaviorHints=build_behavior_hints(
                        link["name"], parse_size_to_bytes(link["size"])
                    ),
                )
            )

        logger.log(
            "SCRAPER",
            f"TorrentGalaxy found {len(streams)} streams for '{search_query}' ({len(unique_links)} detail pages)",
        )
        return streams
