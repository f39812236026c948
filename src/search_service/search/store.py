"""Async boundary around the search index with per-call timeouts."""

import asyncio
from collections.abc import Callable
from typing import TypeVar

import structlog

from search_service.errors import StoreUnavailableError
from search_service.search.index import SearchIndex
from search_service.search.schemas import SearchDocument, SearchHit

logger = structlog.get_logger()

T = TypeVar("T")


class IndexStore:
    """Runs index operations in worker threads, bounded by a timeout.

    A call that exceeds the timeout raises StoreUnavailableError. The
    worker thread is not interrupted and finishes in the background.

    Attributes:
        timeout: Seconds allowed per call.
    """

    def __init__(self, index: SearchIndex, timeout: float = 5.0) -> None:
        """Initialize the store.

        Args:
            index: Open search index to delegate to.
            timeout: Seconds allowed per call.
        """
        self._index = index
        self.timeout = timeout

    async def _run(self, operation: str, func: Callable[..., T], *args: object) -> T:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args), timeout=self.timeout
            )
        except TimeoutError as e:
            logger.warning(
                "index_store_timeout", operation=operation, timeout=self.timeout
            )
            raise StoreUnavailableError(
                f"Index store {operation} timed out after {self.timeout}s"
            ) from e

    async def upsert(self, document: SearchDocument) -> SearchDocument:
        """Insert a document; raises ConflictError if the post is indexed."""
        return await self._run("upsert", self._index.upsert, document)

    async def delete_by_post_id(self, post_id: str) -> bool:
        """Delete the document for a post; absence is not an error."""
        return await self._run("delete", self._index.delete_by_post_id, post_id)

    async def search(self, query: str, limit: int) -> list[SearchHit]:
        """Ranked full-text search."""
        return await self._run("search", self._index.search, query, limit)

    async def count(self) -> int:
        """Number of live documents."""
        return await self._run("count", self._index.count)
