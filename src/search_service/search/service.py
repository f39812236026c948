"""Cache-aside query orchestration."""

import structlog
from pydantic import ValidationError as PydanticValidationError

from search_service.cache import CacheLayer, search_key
from search_service.search.schemas import (
    SearchDocument,
    decode_documents,
    encode_documents,
)
from search_service.search.store import IndexStore

logger = structlog.get_logger()

DEFAULT_RESULT_LIMIT = 10
DEFAULT_CACHE_TTL = 300


class SearchService:
    """Answers queries from the cache, falling back to the index store.

    A cache hit never touches the index store. On a miss the ranked
    result is written back with a fixed TTL, including empty results.
    Cache failures degrade to a miss; index store failures propagate.
    """

    def __init__(
        self,
        store: IndexStore,
        cache: CacheLayer,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        cache_ttl: int = DEFAULT_CACHE_TTL,
    ) -> None:
        self._store = store
        self._cache = cache
        self._result_limit = result_limit
        self._cache_ttl = cache_ttl

    async def search(self, query: str) -> list[SearchDocument]:
        """Return at most result_limit documents matching query, best first.

        Raises:
            StoreUnavailableError: If the cache missed and the index store failed.
        """
        key = search_key(query)

        cached = await self._cache.get(key)
        if cached is not None:
            try:
                documents = decode_documents(cached)
            except PydanticValidationError:
                logger.warning("search_cache_corrupt", key=key)
            else:
                logger.debug("search_cache_hit", query=query, results=len(documents))
                return documents

        hits = await self._store.search(query, self._result_limit)
        documents = [hit.document for hit in hits]

        await self._cache.set_with_ttl(key, encode_documents(documents), self._cache_ttl)
        logger.debug("search_cache_populated", query=query, results=len(documents))
        return documents
