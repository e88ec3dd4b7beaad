import asyncio
import html
import re
from typing import Any, Optional

import aiohttp
import orjson

from lazytorrentio.core.logger import logger
from lazytorrentio.core.models import settings

PRE_PATTERN = re.compile(r"<pre[^>]*>(.*?)</pre>", re.DOTALL | re.IGNORECASE)


class HttpClientManager:
    def __init__(self):
        self._session: Optional[aiohttp.ClientSession] = None
        self._lock = asyncio.Lock()

    async def init(self) -> aiohttp.ClientSession:
        if self._session and not self._session.closed:
            return self._session

        async with self._lock:
            if self._session and not self._session.closed:
                return self._session

            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=20,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": settings.USER_AGENT},
            )
            return self._session

    async def get_session(self) -> aiohttp.ClientSession:
        return await self.init()

    async def close(self) -> None:
        async with self._lock:
            if self._session and not self._session.closed:
                await self._session.close()
            self._session = None


http_client_manager = HttpClientManager()


def _timeout(timeout_ms: Optional[int]) -> aiohttp.ClientTimeout:
    if timeout_ms is None:
        timeout_ms = settings.HTTP_TIMEOUT_MS
    return aiohttp.ClientTimeout(total=timeout_ms / 1000)


async def _fetch_direct(url: str, timeout_ms: Optional[int], as_json: bool):
    session = await http_client_manager.get_session()
    try:
        async with session.get(
            url, timeout=_timeout(timeout_ms), proxy=settings.GLOBAL_PROXY_URL
        ) as response:
            if not 200 <= response.status < 300:
                logger.debug(f"{url} answered HTTP {response.status}")
                return None

            if as_json:
                return await response.json(content_type=None, loads=orjson.loads)
            return await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.debug(f"Request to {url} failed: {e!r}")
        return None


async def relay_command(payload: dict, timeout_ms: Optional[int] = None):
    """
    Send one command to the FlareSolverr relay.

    Returns the decoded relay envelope, or None when the relay is disabled,
    unreachable or answers with anything but a JSON object.
    """
    if not settings.FLARESOLVERR_URL:
        return None

    session = await http_client_manager.get_session()
    try:
        async with session.post(
            f"{settings.FLARESOLVERR_URL}/v1",
            json=payload,
            timeout=_timeout(timeout_ms),
        ) as response:
            if not 200 <= response.status < 300:
                logger.debug(
                    f"FlareSolverr answered HTTP {response.status} for {payload.get('cmd')}"
                )
                return None

            data = await response.json(content_type=None, loads=orjson.loads)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.debug(f"FlareSolverr {payload.get('cmd')} failed: {e!r}")
        return None

    return data if isinstance(data, dict) else None


async def _fetch_via_relay(
    url: str, timeout_ms: Optional[int], session_id: Optional[str]
) -> Optional[str]:
    if timeout_ms is None:
        timeout_ms = settings.HTTP_TIMEOUT_MS

    payload = {"cmd": "request.get", "url": url, "maxTimeout": timeout_ms}
    if session_id:
        payload["session"] = session_id

    data = await relay_command(payload, timeout_ms)
    if not data or data.get("status") != "ok":
        return None

    solution = data.get("solution")
    if not isinstance(solution, dict):
        return None

    body = solution.get("response")
    status = solution.get("status")
    if not body or not isinstance(status, int):
        return None

    if not 200 <= status < 300:
        logger.debug(f"FlareSolverr resolved {url} with HTTP {status}")
        return None

    return body


def _loads_relay_body(body: str) -> Any:
    try:
        return orjson.loads(body)
    except orjson.JSONDecodeError:
        pass

    # the relay browser wraps raw JSON documents in a <pre> block
    match = PRE_PATTERN.search(body)
    if not match:
        return None

    try:
        return orjson.loads(html.unescape(match.group(1)))
    except orjson.JSONDecodeError:
        return None


async def fetch_json(
    url: str,
    timeout_ms: Optional[int] = None,
    use_relay: bool = False,
    relay_session: Optional[str] = None,
):
    if use_relay:
        body = await _fetch_via_relay(url, timeout_ms, relay_session)
        if not body:
            return None
        return _loads_relay_body(body)

    return await _fetch_direct(url, timeout_ms, as_json=True)


async def fetch_text(
    url: str,
    timeout_ms: Optional[int] = None,
    use_relay: bool = False,
    relay_session: Optional[str] = None,
) -> Optional[str]:
    if use_relay:
        return await _fetch_via_relay(url, timeout_ms, relay_session)

    return await _fetch_direct(url, timeout_ms, as_json=False)
