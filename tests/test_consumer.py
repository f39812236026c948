"""Event consumer tests: idempotency, invalidation and staleness bounds."""

import asyncio

import pytest
from structlog.testing import capture_logs

from conftest import BASE_TIME, FailingRedis, FakeClock, FakeRedis, created_event, minutes
from search_service.cache import CacheLayer, search_key
from search_service.errors import StoreUnavailableError, ValidationError
from search_service.events import (
    ContentDeletedEvent,
    EventConsumer,
    EventStage,
    EventType,
    parse_event,
)
from search_service.search import IndexStore, SearchIndex, SearchService


class GatedStore:
    """Pauses a search after it has read the index, before it returns."""

    def __init__(self, inner: IndexStore) -> None:
        self.inner = inner
        self.read_done = asyncio.Event()
        self.release = asyncio.Event()

    async def search(self, query: str, limit: int):
        hits = await self.inner.search(query, limit)
        self.read_done.set()
        await self.release.wait()
        return hits


def test_parse_created_event() -> None:
    """A complete payload parses into a typed event."""
    event = parse_event("content.created", created_event("p1", "hello"))

    assert event.post_id == "p1"
    assert event.created_at == BASE_TIME


def test_parse_ignores_unconsumed_fields() -> None:
    """Extra upstream fields are ignored."""
    payload = {"postId": "p1", "mediaIds": ["m1"], "traceId": "t"}

    assert parse_event("content.deleted", payload) == ContentDeletedEvent(post_id="p1")


@pytest.mark.parametrize(
    ("event_type", "payload"),
    [
        ("content.created", {"userId": "u", "content": "x", "createdAt": "2024-01-01T00:00:00Z"}),
        ("content.created", {"postId": "p1", "content": "x", "createdAt": "2024-01-01T00:00:00Z"}),
        ("content.created", {"postId": "p1", "userId": "u", "content": "x"}),
        ("content.created", {"postId": "p1", "userId": "u", "content": "x", "createdAt": "soon"}),
        ("content.deleted", {}),
        ("content.deleted", {"postId": ""}),
        ("content.updated", {"postId": "p1"}),
    ],
)
def test_parse_rejects_malformed_events(event_type: str, payload: dict) -> None:
    """Missing or invalid fields and unknown types are validation errors."""
    with pytest.raises(ValidationError):
        parse_event(event_type, payload)


@pytest.mark.asyncio
async def test_create_indexes_document(consumer: EventConsumer, index: SearchIndex) -> None:
    """A created event is applied, the cache swept, and the event acknowledged."""
    outcome = await consumer.dispatch("content.created", created_event("p1", "hello"))

    assert outcome.type is EventType.CONTENT_CREATED
    assert outcome.stage is EventStage.ACKNOWLEDGED
    assert outcome.acknowledged
    assert outcome.duplicate is False
    assert index.get_by_post_id("p1") is not None


@pytest.mark.asyncio
async def test_duplicate_create_is_idempotent(
    consumer: EventConsumer, index: SearchIndex
) -> None:
    """Redelivering a created event leaves exactly one live document."""
    payload = created_event("p1", "hello world")

    first = await consumer.dispatch("content.created", payload)
    second = await consumer.dispatch("content.created", payload)

    assert first.acknowledged and second.acknowledged
    assert second.duplicate is True
    assert index.count() == 1
    assert len(index.search("hello", 10)) == 1


@pytest.mark.asyncio
async def test_delete_missing_post_succeeds(consumer: EventConsumer) -> None:
    """Deleting a post that was never indexed is acknowledged as a no-op."""
    outcome = await consumer.dispatch("content.deleted", {"postId": "ghost"})

    assert outcome.acknowledged
    assert outcome.duplicate is True


@pytest.mark.asyncio
async def test_duplicate_delete_is_idempotent(
    consumer: EventConsumer, index: SearchIndex
) -> None:
    """Redelivering a deleted event is harmless."""
    await consumer.dispatch("content.created", created_event("p1", "hello"))

    first = await consumer.dispatch("content.deleted", {"postId": "p1"})
    second = await consumer.dispatch("content.deleted", {"postId": "p1"})

    assert first.duplicate is False
    assert second.duplicate is True
    assert index.count() == 0


@pytest.mark.asyncio
async def test_delete_before_create_then_create(
    consumer: EventConsumer, index: SearchIndex
) -> None:
    """An early delete is a no-op and the later create still indexes."""
    await consumer.dispatch("content.deleted", {"postId": "p1"})
    outcome = await consumer.dispatch("content.created", created_event("p1", "late"))

    assert outcome.duplicate is False
    assert index.get_by_post_id("p1") is not None


@pytest.mark.asyncio
async def test_events_sweep_search_cache(
    consumer: EventConsumer, cache: CacheLayer, fake_redis: FakeRedis
) -> None:
    """Both event kinds remove every search entry and nothing else."""
    await fake_redis.set("search:a", b"[]", ex=300)
    await fake_redis.set("other:a", b"1", ex=300)

    outcome = await consumer.dispatch("content.created", created_event("p1", "x"))
    assert outcome.cache_keys_evicted == 1
    assert fake_redis.keys() == ["other:a"]

    await fake_redis.set("search:b", b"[]", ex=300)
    await consumer.dispatch("content.deleted", {"postId": "p1"})
    assert fake_redis.keys() == ["other:a"]


@pytest.mark.asyncio
async def test_deleted_document_leaves_cached_query(
    consumer: EventConsumer, service: SearchService
) -> None:
    """After a delete the repeated query excludes the document immediately."""
    await consumer.dispatch("content.created", created_event("p1", "breaking news"))
    await consumer.dispatch(
        "content.created", created_event("p2", "more news", BASE_TIME + minutes(1))
    )
    assert [d.post_id for d in await service.search("news")] == ["p2", "p1"]

    await consumer.dispatch("content.deleted", {"postId": "p1"})

    assert [d.post_id for d in await service.search("news")] == ["p2"]


@pytest.mark.asyncio
async def test_created_document_appears_in_cached_query(
    consumer: EventConsumer, service: SearchService
) -> None:
    """A cached empty result is dropped when a matching document arrives."""
    assert await service.search("fresh") == []

    await consumer.dispatch("content.created", created_event("p1", "fresh content"))

    assert [d.post_id for d in await service.search("fresh")] == ["p1"]


@pytest.mark.asyncio
async def test_racing_stale_write_bounded_by_ttl(
    consumer: EventConsumer,
    store: IndexStore,
    cache: CacheLayer,
    clock: FakeClock,
) -> None:
    """A query that read the index before a delete may cache stale data,
    but only until the entry's TTL expires."""
    await consumer.dispatch("content.created", created_event("p1", "stale news"))
    gated = GatedStore(store)
    racing = SearchService(gated, cache, cache_ttl=300)  # type: ignore[arg-type]
    reader = SearchService(store, cache, cache_ttl=300)

    task = asyncio.create_task(racing.search("news"))
    await gated.read_done.wait()
    await consumer.dispatch("content.deleted", {"postId": "p1"})
    gated.release.set()
    assert [d.post_id for d in await task] == ["p1"]

    # Stale entry written after the sweep is served within the TTL window
    clock.advance(299)
    assert [d.post_id for d in await reader.search("news")] == ["p1"]

    clock.advance(1)
    assert await reader.search("news") == []


@pytest.mark.asyncio
async def test_malformed_event_is_dropped(
    consumer: EventConsumer, index: SearchIndex
) -> None:
    """Malformed events raise ValidationError and change nothing."""
    with pytest.raises(ValidationError):
        await consumer.dispatch("content.created", {"postId": "p1"})

    assert index.count() == 0


@pytest.mark.asyncio
async def test_stages_are_logged_in_order(consumer: EventConsumer) -> None:
    """Each stage of an accepted event is logged, starting with received."""
    with capture_logs() as logs:
        await consumer.dispatch("content.created", created_event("p1", "news"))

    stages = [entry["stage"] for entry in logs if entry["event"] == "event_stage"]
    assert stages == ["received", "applied", "cache_invalidated"]


@pytest.mark.asyncio
async def test_malformed_event_is_logged_as_received(consumer: EventConsumer) -> None:
    """A dropped event still records that it was received."""
    with capture_logs() as logs:
        with pytest.raises(ValidationError):
            await consumer.dispatch("content.created", {"postId": "p1"})

    events = [entry["event"] for entry in logs]
    assert events == ["event_stage", "event_dropped"]
    assert logs[0]["stage"] == EventStage.RECEIVED.value


@pytest.mark.asyncio
async def test_store_failure_aborts_event(
    consumer: EventConsumer, index: SearchIndex, fake_redis: FakeRedis
) -> None:
    """An unavailable index aborts the event before the cache is touched."""
    await fake_redis.set(search_key("news"), b"[]", ex=300)
    index.close()

    with pytest.raises(StoreUnavailableError):
        await consumer.dispatch("content.created", created_event("p1", "news"))
    with pytest.raises(StoreUnavailableError):
        await consumer.dispatch("content.deleted", {"postId": "p1"})

    assert fake_redis.keys() == [search_key("news")]


@pytest.mark.asyncio
async def test_cache_failure_does_not_fail_event(
    store: IndexStore, index: SearchIndex
) -> None:
    """Events are acknowledged even when invalidation cannot reach the cache."""
    consumer = EventConsumer(store, CacheLayer(FailingRedis()))  # type: ignore[arg-type]

    outcome = await consumer.dispatch("content.created", created_event("p1", "x"))

    assert outcome.acknowledged
    assert outcome.cache_keys_evicted == 0
    assert index.count() == 1
