import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from lazytorrentio.api.endpoints import base, manifest
from lazytorrentio.api.endpoints import stream as streams_router
from lazytorrentio.core.exceptions import BadRequestError
from lazytorrentio.core.logger import logger
from lazytorrentio.core.models import settings
from lazytorrentio.metadata.imdb import get_title_basics
from lazytorrentio.scrapers.manager import ScraperManager
from lazytorrentio.services.aggregation import StreamAggregator
from lazytorrentio.services.cache import redis_client
from lazytorrentio.services.relay import RelayPool, build_relay_pool_configs
from lazytorrentio.utils.http_client import http_client_manager


class LoguruMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            logger.exception(f"Exception during request processing: {e}")
            raise
        finally:
            process_time = time.time() - start_time
            logger.log(
                "API",
                f"{request.method} {request.url.path} - {status_code} - {process_time:.2f}s",
            )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    await http_client_manager.init()
    await redis_client.connect()

    relay_pool = RelayPool(build_relay_pool_configs(settings))
    await relay_pool.start()

    scraper_manager = ScraperManager.from_settings(
        settings, get_title_basics, relay_pool
    )
    app.state.aggregator = StreamAggregator(
        redis_client, scraper_manager, settings.stream_cache_ttl
    )

    try:
        yield
    finally:
        await relay_pool.close()
        await redis_client.disconnect()
        await http_client_manager.close()


app = FastAPI(
    title="lazy-torrentio",
    summary="On-demand torrent streams add-on.",
    lifespan=lifespan,
    redoc_url=None,
)


@app.exception_handler(BadRequestError)
async def bad_request_handler(request: Request, exc: BadRequestError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


app.add_middleware(LoguruMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(base.router)
app.include_router(manifest.router)
app.include_router(streams_router.streams)
