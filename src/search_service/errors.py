"""Error taxonomy for the search service.

Index store failures propagate to callers; cache failures are always
absorbed inside the cache layer; malformed events are dropped.
"""


class SearchServiceError(Exception):
    """Base class for all search service errors."""


class ConflictError(SearchServiceError):
    """A live document already exists for the given post id.

    Attributes:
        post_id: The conflicting post identifier.
    """

    def __init__(self, post_id: str) -> None:
        self.post_id = post_id
        super().__init__(f"Document for post {post_id!r} already indexed")


class StoreUnavailableError(SearchServiceError):
    """The index store could not complete the operation."""


class CacheUnavailableError(SearchServiceError):
    """The cache backend failed or timed out.

    Never surfaced to callers of the cache layer.
    """


class ValidationError(SearchServiceError):
    """An inbound event is malformed or of an unknown type."""
