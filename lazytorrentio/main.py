import traceback

import uvicorn

from lazytorrentio.api.app import app
from lazytorrentio.core.logger import log_startup_info, logger, setupLogger
from lazytorrentio.core.models import settings


def run_with_uvicorn():
    """Run the server with uvicorn only"""
    setupLogger(settings.LOG_LEVEL)

    config = uvicorn.Config(
        app,
        host=settings.FASTAPI_HOST,
        port=settings.FASTAPI_PORT,
        proxy_headers=True,
        forwarded_allow_ips="*",
        workers=settings.FASTAPI_WORKERS,
        log_config=None,
    )
    server = uvicorn.Server(config=config)

    log_startup_info(settings)
    try:
        server.run()
    except KeyboardInterrupt:
        logger.log("LAZY", "Server stopped by user")
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.exception(traceback.format_exc())
    finally:
        logger.log("LAZY", "Server Shutdown")


if __name__ == "__main__":
    run_with_uvicorn()
