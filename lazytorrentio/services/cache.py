from typing import Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from lazytorrentio.core.logger import logger
from lazytorrentio.core.models import settings


class RedisClient:
    def __init__(self, url: Optional[str] = None):
        self.url = url
        self.redis = None
        self._connected = False
        self.cache_hits = 0
        self.cache_misses = 0

    async def connect(self):
        if not self.url:
            logger.log("CACHE", "REDIS_URL not configured, stream cache disabled")
            return False

        try:
            self.redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            await self.redis.ping()
            self._connected = True
            logger.log("CACHE", f"Redis connection established ({self.url})")
            return True
        except (ConnectionError, TimeoutError) as e:
            logger.warning(f"Redis connection failed: {e}")
        except RedisError as e:
            logger.error(f"Redis error during connection: {e}")

        self._connected = False
        return False

    async def disconnect(self):
        if not self.redis:
            return

        if self.cache_hits + self.cache_misses > 0:
            hit_rate = (self.cache_hits / (self.cache_hits + self.cache_misses)) * 100
            logger.log(
                "CACHE",
                f"Hits: {self.cache_hits}, Misses: {self.cache_misses}, Hit Rate: {hit_rate:.1f}%",
            )
        await self.redis.aclose()
        self.redis = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    async def _ensure_connection(self) -> bool:
        if self._connected:
            return True
        if not self.url:
            return False
        return await self.connect()

    async def get(self, key: str) -> Optional[str]:
        if not await self._ensure_connection():
            return None

        try:
            value = await self.redis.get(key)
        except (ConnectionError, TimeoutError) as e:
            logger.warning(f"Redis connection issue during GET for key {key}: {e}")
            self._connected = False
            return None
        except RedisError as e:
            logger.error(f"Redis error during GET for key {key}: {e}")
            return None

        if value is None:
            self.cache_misses += 1
        else:
            self.cache_hits += 1
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        if not await self._ensure_connection():
            return False

        try:
            if ttl and ttl > 0:
                await self.redis.setex(key, ttl, value)
            else:
                await self.redis.set(key, value)
            return True
        except (ConnectionError, TimeoutError) as e:
            logger.warning(f"Redis connection issue during SET for key {key}: {e}")
            self._connected = False
            return False
        except RedisError as e:
            logger.error(f"Redis error during SET for key {key}: {e}")
            return False


redis_client = RedisClient(settings.REDIS_URL)
