import asyncio
from typing import Dict, List, Optional, Tuple

from lazytorrentio.core.logger import log_scraper_error
from lazytorrentio.scrapers.base import BaseScraper
from lazytorrentio.scrapers.eztv import EZTVScraper
from lazytorrentio.scrapers.models import ParsedIdentifier, ScraperQuery, Stream
from lazytorrentio.scrapers.torrentgalaxy import TorrentGalaxyScraper
from lazytorrentio.scrapers.yts import YTSScraper

# priority order, earlier scrapers win on duplicate urls
SCRAPERS_BY_TYPE = {
    "movie": ("yts", "torrentgalaxy"),
    "series": ("eztv", "torrentgalaxy"),
}


class ScraperManager:
    def __init__(
        self,
        scrapers: Dict[str, BaseScraper],
        mirrors: Dict[str, List[str]],
    ):
        self.scrapers = scrapers
        self.mirrors = mirrors

    @classmethod
    def from_settings(cls, settings, get_title_basics, relay=None):
        return cls(
            scrapers={
                "eztv": EZTVScraper(relay),
                "yts": YTSScraper(relay),
                "torrentgalaxy": TorrentGalaxyScraper(get_title_basics, relay),
            },
            mirrors={
                "eztv": settings.EZTV_URL,
                "yts": settings.YTS_URL,
                "torrentgalaxy": settings.TGX_URL,
            },
        )

    async def _scrape_wrapper(
        self, key: str, parsed: ParsedIdentifier
    ) -> Tuple[str, Optional[List[Stream]]]:
        mirrors = self.mirrors.get(key) or []
        query = ScraperQuery(parsed=parsed, mirrors=mirrors)
        try:
            return key, await self.scrapers[key].scrape(query)
        except Exception as e:
            log_scraper_error(
                self.scrapers[key].display_name, ", ".join(mirrors), parsed.base_id, e
            )
            return key, None

    async def scrape_all(self, media_type: str, parsed: ParsedIdentifier):
        """
        Run every scraper selected for ``media_type`` concurrently and wait for
        all of them to settle.

        Results come back in priority order regardless of completion order;
        failed scrapers are dropped.
        """
        keys = SCRAPERS_BY_TYPE[media_type]
        results = await asyncio.gather(
            *[self._scrape_wrapper(key, parsed) for key in keys]
        )
        return [(key, streams) for key, streams in results if streams is not None]
