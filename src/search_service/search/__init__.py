"""Full-text search subsystem: FTS5 index, async store and query service."""

from search_service.search.index import SearchIndex
from search_service.search.schemas import SearchDocument, SearchHit, SearchResult
from search_service.search.service import SearchService
from search_service.search.store import IndexStore

__all__ = [
    "IndexStore",
    "SearchDocument",
    "SearchHit",
    "SearchIndex",
    "SearchResult",
    "SearchService",
]
