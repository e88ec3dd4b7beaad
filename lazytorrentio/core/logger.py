import logging
import sys

from loguru import logger

from lazytorrentio.core.log_levels import CUSTOM_LOG_LEVELS, STANDARD_LOG_LEVELS

logging.getLogger("uvicorn.access").disabled = True  # replaced by LoguruMiddleware


def setupLogger(level: str):
    # Configure custom log levels
    for level_name, level_config in CUSTOM_LOG_LEVELS.items():
        try:
            logger.level(level_name)
        except ValueError:
            logger.level(
                level_name,
                no=level_config["no"],
                icon=level_config["icon"],
                color=level_config["loguru_color"],
            )

    # Configure standard log levels (override defaults)
    for level_name, level_config in STANDARD_LOG_LEVELS.items():
        logger.level(
            level_name, icon=level_config["icon"], color=level_config["loguru_color"]
        )

    log_format = (
        "<white>{time:YYYY-MM-DD}</white> <magenta>{time:HH:mm:ss}</magenta> | "
        "<level>{level.icon}</level> <level>{level}</level> | "
        "<cyan>{module}</cyan>.<cyan>{function}</cyan> - <level>{message}</level>"
    )

    logger.configure(
        handlers=[
            {
                "sink": sys.stderr,
                "level": level,
                "format": log_format,
                "backtrace": False,
                "diagnose": False,
            }
        ]
    )


setupLogger("DEBUG")


def log_scraper_error(
    scraper_name: str, scraper_url: str, media_id: str, error: Exception
):
    logger.warning(
        f"Exception while getting torrents for {media_id} with {scraper_name} ({scraper_url}), the mirror is most likely down or ratelimiting: {error}"
    )


def log_startup_info(settings):
    logger.log(
        "LAZY",
        f"Server started on http://{settings.FASTAPI_HOST}:{settings.FASTAPI_PORT} - {settings.FASTAPI_WORKERS} workers",
    )
    logger.log(
        "LAZY",
        f"Cache: {settings.REDIS_URL or 'disabled'} - TTL: {settings.stream_cache_ttl}s",
    )
    logger.log("LAZY", f"HTTP Timeout: {settings.HTTP_TIMEOUT_MS}ms")
    logger.log("LAZY", f"Outbound Proxy: {settings.GLOBAL_PROXY_URL}")
    logger.log(
        "LAZY",
        f"FlareSolverr: {settings.FLARESOLVERR_URL or 'disabled'} - Sessions: {settings.FLARESOLVERR_SESSIONS}",
    )
    logger.log(
        "LAZY",
        f"EZTV Mirrors: {', '.join(settings.EZTV_URL)} - FlareSolverr: {bool(settings.EZTV_USE_FLARESOLVERR)}",
    )
    logger.log(
        "LAZY",
        f"YTS Mirrors: {', '.join(settings.YTS_URL)} - FlareSolverr: {bool(settings.YTS_USE_FLARESOLVERR)}",
    )
    logger.log(
        "LAZY",
        f"TorrentGalaxy Mirrors: {', '.join(settings.TGX_URL)} - FlareSolverr: {bool(settings.TGX_USE_FLARESOLVERR)}",
    )
