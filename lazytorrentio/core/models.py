from typing import Annotated, List, Optional

import orjson
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

MirrorList = Annotated[List[str], NoDecode]


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    ADDON_ID: Optional[str] = "lazy.torrentio"
    ADDON_NAME: Optional[str] = "lazy-torrentio"
    FASTAPI_HOST: Optional[str] = "0.0.0.0"
    FASTAPI_PORT: Optional[int] = 7000
    FASTAPI_WORKERS: Optional[int] = 1
    LOG_LEVEL: Optional[str] = "DEBUG"
    USER_AGENT: Optional[str] = "lazy-torrentio"
    HTTP_TIMEOUT_MS: Optional[int] = 10000
    GLOBAL_PROXY_URL: Optional[str] = None
    EZTV_URL: MirrorList = ["https://eztvx.to"]
    YTS_URL: MirrorList = ["https://yts.mx"]
    TGX_URL: MirrorList = ["https://torrentgalaxy.one"]
    EZTV_USE_FLARESOLVERR: Optional[bool] = False
    YTS_USE_FLARESOLVERR: Optional[bool] = False
    TGX_USE_FLARESOLVERR: Optional[bool] = False
    FLARESOLVERR_URL: Optional[str] = "http://localhost:8191"
    FLARESOLVERR_SESSIONS: Optional[int] = 0
    REDIS_URL: Optional[str] = None
    CACHE_TTL: Optional[int] = 604800  # 7 days
    REDIS_TTL_HOURS: Optional[float] = None
    IMDB_SUGGESTION_URL: Optional[str] = "https://v3.sg.media-imdb.com/suggestion"

    @field_validator("EZTV_URL", "YTS_URL", "TGX_URL", mode="before")
    def split_mirrors(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                v = orjson.loads(v)
            else:
                v = [url.strip() for url in v.split(",")]
        return [url.rstrip("/") for url in v if url]

    @field_validator("FLARESOLVERR_URL", "IMDB_SUGGESTION_URL", "REDIS_URL")
    def remove_trailing_slash(cls, v):
        if v and v.endswith("/"):
            return v[:-1]
        return v or None

    @property
    def stream_cache_ttl(self) -> int:
        if self.REDIS_TTL_HOURS:
            return max(1, round(self.REDIS_TTL_HOURS * 3600))
        return self.CACHE_TTL


settings = AppSettings()
