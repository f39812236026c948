"""Applies content-lifecycle events to the index and invalidates the cache."""

from typing import Any

import structlog

from search_service.cache import SEARCH_PREFIX, CacheLayer
from search_service.errors import ConflictError, StoreUnavailableError, ValidationError
from search_service.events.types import (
    ContentCreatedEvent,
    ContentDeletedEvent,
    EventOutcome,
    EventStage,
    EventType,
    parse_event,
)
from search_service.search.schemas import SearchDocument
from search_service.search.store import IndexStore

logger = structlog.get_logger()


class EventConsumer:
    """Keeps the search index in sync with upstream content events.

    Each event moves through received -> applied -> cache_invalidated ->
    acknowledged. Handlers are idempotent under redelivery and tolerate
    out-of-order create/delete pairs. Any index change sweeps the whole
    search cache, since free-text keys cannot be mapped back to the
    documents they contain.
    """

    def __init__(self, store: IndexStore, cache: CacheLayer) -> None:
        self._store = store
        self._cache = cache

    async def dispatch(self, event_type: str, payload: Any) -> EventOutcome:
        """Validate a raw event and route it to its handler.

        Raises:
            ValidationError: If the event is malformed; it should be dropped.
            StoreUnavailableError: If the index could not be updated; the
                event was not acknowledged and may be redelivered.
        """
        logger.debug(
            "event_stage", event_type=event_type, stage=EventStage.RECEIVED.value
        )
        try:
            event = parse_event(event_type, payload)
        except ValidationError as e:
            logger.warning("event_dropped", event_type=event_type, reason=str(e))
            raise

        if isinstance(event, ContentCreatedEvent):
            return await self.on_content_created(event)
        return await self.on_content_deleted(event)

    async def on_content_created(self, event: ContentCreatedEvent) -> EventOutcome:
        """Index a newly created content item.

        A redelivered event finds the post already indexed; the conflict
        counts as already applied.
        """
        document = SearchDocument(
            post_id=event.post_id,
            user_id=event.user_id,
            content=event.content,
            created_at=event.created_at,
        )
        duplicate = False
        try:
            await self._store.upsert(document)
        except ConflictError:
            duplicate = True
            logger.info("event_already_applied", post_id=event.post_id)
        except StoreUnavailableError as e:
            logger.error(
                "event_not_applied",
                event_type=EventType.CONTENT_CREATED.value,
                post_id=event.post_id,
                error=str(e),
            )
            raise

        return await self._finish(EventType.CONTENT_CREATED, event.post_id, duplicate)

    async def on_content_deleted(self, event: ContentDeletedEvent) -> EventOutcome:
        """Remove a content item from the index; absence is a no-op."""
        try:
            removed = await self._store.delete_by_post_id(event.post_id)
        except StoreUnavailableError as e:
            logger.error(
                "event_not_applied",
                event_type=EventType.CONTENT_DELETED.value,
                post_id=event.post_id,
                error=str(e),
            )
            raise

        return await self._finish(
            EventType.CONTENT_DELETED, event.post_id, duplicate=not removed
        )

    async def _finish(
        self, event_type: EventType, post_id: str, duplicate: bool
    ) -> EventOutcome:
        logger.debug(
            "event_stage", post_id=post_id, stage=EventStage.APPLIED.value
        )

        # Best-effort: a failed sweep leaves stale entries until their TTL
        evicted = await self._cache.invalidate_prefix(SEARCH_PREFIX)
        logger.debug(
            "event_stage", post_id=post_id, stage=EventStage.CACHE_INVALIDATED.value
        )

        logger.info(
            "event_acknowledged",
            event_type=event_type.value,
            post_id=post_id,
            duplicate=duplicate,
            cache_keys_evicted=evicted,
        )
        return EventOutcome(
            type=event_type,
            post_id=post_id,
            stage=EventStage.ACKNOWLEDGED,
            duplicate=duplicate,
            cache_keys_evicted=evicted,
        )
