import itertools
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from lazytorrentio.core.logger import logger
from lazytorrentio.core.models import settings
from lazytorrentio.utils.http_client import fetch_text, relay_command

RELAY_WARMUP_TIMEOUT_MS = 60000


@dataclass(frozen=True)
class RelayPoolConfig:
    key: str
    session_count: int
    warmup_url: str


def apply_session_cap(count: int) -> int:
    session_cap = settings.FLARESOLVERR_SESSIONS or 0
    return min(session_cap, count) if session_cap > 0 else 0


def build_relay_pool_configs(app_settings) -> List[RelayPoolConfig]:
    table = (
        ("eztv", app_settings.EZTV_USE_FLARESOLVERR, app_settings.EZTV_URL),
        ("yts", app_settings.YTS_USE_FLARESOLVERR, app_settings.YTS_URL),
        ("torrentgalaxy", app_settings.TGX_USE_FLARESOLVERR, app_settings.TGX_URL),
    )

    configs = []
    for key, enabled, mirrors in table:
        if not enabled or not mirrors:
            continue

        configs.append(
            RelayPoolConfig(
                key=key,
                session_count=apply_session_cap(len(mirrors)),
                warmup_url=mirrors[0],
            )
        )

    return configs


class RelayPool:
    """
    FlareSolverr sessions grouped by scraper key.

    A scraper listed in the capability table routes its requests through the
    relay even when no session could be created; sessions only keep the
    solved browser context alive between requests.
    """

    def __init__(self, configs: List[RelayPoolConfig]):
        self.configs: Dict[str, RelayPoolConfig] = {
            config.key: config for config in configs
        }
        self.sessions: Dict[str, List[str]] = {}
        self._cursors: Dict[str, Iterator[str]] = {}

    def uses_relay(self, key: str) -> bool:
        return key in self.configs

    def session_for(self, key: str) -> Optional[str]:
        cursor = self._cursors.get(key)
        return next(cursor) if cursor else None

    async def start(self):
        for config in self.configs.values():
            created = []
            for index in range(config.session_count):
                session_id = f"{config.key}-{index + 1}"
                response = await relay_command(
                    {"cmd": "sessions.create", "session": session_id},
                    RELAY_WARMUP_TIMEOUT_MS,
                )
                if not response or response.get("status") != "ok":
                    logger.warning(
                        f"Could not create FlareSolverr session {session_id}"
                    )
                    continue

                await fetch_text(
                    config.warmup_url,
                    RELAY_WARMUP_TIMEOUT_MS,
                    use_relay=True,
                    relay_session=session_id,
                )
                created.append(session_id)

            if created:
                self.sessions[config.key] = created
                self._cursors[config.key] = itertools.cycle(created)

            logger.log(
                "SCRAPER",
                f"FlareSolverr pool {config.key}: {len(created)}/{config.session_count} sessions",
            )

    async def close(self):
        for session_ids in self.sessions.values():
            for session_id in session_ids:
                await relay_command({"cmd": "sessions.destroy", "session": session_id})

        self.sessions.clear()
        self._cursors.clear()
