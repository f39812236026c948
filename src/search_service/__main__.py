"""Entry point for the search service."""

import asyncio
import contextlib
import sys

import structlog
import uvicorn

from search_service.app import create_app
from search_service.config import Settings
from search_service.logging import configure_logging

logger = structlog.get_logger()


async def serve(settings: Settings) -> None:
    """Run uvicorn with the configured application.

    uvicorn handles SIGTERM/SIGINT; the application lifespan closes the
    index and cache connections on the way out.

    Args:
        settings: Server configuration.
    """
    app = create_app(settings)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    logger.info("server_starting", host=settings.host, port=settings.port)
    await server.serve()


def main() -> None:
    """Entry point for python -m search_service."""
    settings = Settings()
    configure_logging(debug=settings.debug)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(settings))

    sys.exit(0)


if __name__ == "__main__":
    main()
