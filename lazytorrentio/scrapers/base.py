from abc import ABC, abstractmethod
from typing import List, Optional

from lazytorrentio.scrapers.models import ScraperQuery, Stream


class BaseScraper(ABC):
    key: str = ""
    display_name: str = ""

    def __init__(self, relay=None):
        self.relay = relay

    @property
    def use_relay(self) -> bool:
        return bool(self.relay and self.relay.uses_relay(self.key))

    def relay_session(self) -> Optional[str]:
        if not self.use_relay:
            return None
        return self.relay.session_for(self.key)

    @abstractmethod
    async def scrape(self, query: ScraperQuery) -> List[Stream]:
        pass
