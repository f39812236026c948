"""FastAPI application factory and lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from search_service import __version__
from search_service.cache import CacheLayer
from search_service.config import Settings
from search_service.events import EventConsumer
from search_service.middleware.logging import RequestLoggingMiddleware
from search_service.responses import register_error_handlers
from search_service.routes import events, health, search
from search_service.search import IndexStore, SearchIndex, SearchService

logger = structlog.get_logger()


def _build_cache(settings: Settings) -> CacheLayer:
    if not settings.cache_enabled:
        return CacheLayer.disabled()
    return CacheLayer.from_url(settings.redis_url, timeout=settings.cache_timeout)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle events.

    Opens the search index and the cache client on startup, wires the
    index store, query service and event consumer onto app.state, and
    closes both backends on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    logger.info("api_startup", host=settings.host, port=settings.port)

    search_index = SearchIndex(settings.index_path)
    search_index.initialize()

    cache: CacheLayer = app.state.cache or _build_cache(settings)
    await cache.open()

    index_store = IndexStore(search_index, timeout=settings.index_timeout)
    app.state.search_index = search_index
    app.state.cache = cache
    app.state.index_store = index_store
    app.state.search_service = SearchService(
        index_store,
        cache,
        result_limit=settings.result_limit,
        cache_ttl=settings.cache_ttl_seconds,
    )
    app.state.event_consumer = EventConsumer(index_store, cache)

    logger.info(
        "search_index_ready",
        document_count=search_index.count(),
        cache_enabled=cache.enabled,
    )

    try:
        yield
    finally:
        await cache.close()
        search_index.close()
        logger.info("api_shutdown")


def create_app(
    settings: Settings | None = None,
    cache: CacheLayer | None = None,
) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Args:
        settings: Configuration instance. Creates default if None.
        cache: Cache layer to use instead of one built from settings.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Search Service",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/v1/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/v1/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.cache = cache

    register_error_handlers(app)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, prefix="/api/v1")
    app.include_router(search.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")

    return app
