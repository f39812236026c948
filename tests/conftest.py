"""Pytest configuration and fixtures."""

import sys
from collections.abc import AsyncIterator, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from search_service.app import create_app
from search_service.cache import CacheLayer
from search_service.config import Settings
from search_service.events import EventConsumer
from search_service.search import IndexStore, SearchIndex, SearchService

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio.Redis the cache uses."""

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self._data: dict[str, tuple[bytes, float | None]] = {}

    def _live(self, key: str) -> bytes | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock.now >= expires_at:
            del self._data[key]
            return None
        return value

    def keys(self) -> list[str]:
        return [k for k in list(self._data) if self._live(k) is not None]

    async def get(self, name: str) -> bytes | None:
        return self._live(name)

    async def set(self, name: str, value: bytes, ex: int | None = None) -> bool:
        expires_at = self._clock.now + ex if ex is not None else None
        self._data[name] = (value, expires_at)
        return True

    async def scan_iter(
        self, match: str | None = None, count: int | None = None
    ) -> AsyncIterator[bytes]:
        assert match is not None and match.endswith("*")
        prefix = match[:-1].replace("\\", "")
        for key in self.keys():
            if key.startswith(prefix):
                yield key.encode()

    async def delete(self, *names: bytes | str) -> int:
        deleted = 0
        for name in names:
            key = name.decode() if isinstance(name, bytes) else name
            if self._data.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class FailingRedis:
    """Redis client whose every call fails as if the server were down."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self) -> None:
        self.calls += 1
        raise RedisConnectionError("Connection refused")

    async def get(self, name: str) -> bytes | None:
        self._fail()

    async def set(self, name: str, value: bytes, ex: int | None = None) -> bool:
        self._fail()

    async def scan_iter(
        self, match: str | None = None, count: int | None = None
    ) -> AsyncIterator[bytes]:
        self._fail()
        yield b""

    async def delete(self, *names: bytes | str) -> int:
        self._fail()

    async def ping(self) -> bool:
        self._fail()

    async def aclose(self) -> None:
        return None


class SpyStore:
    """Counts index store searches."""

    def __init__(self, inner: IndexStore) -> None:
        self.inner = inner
        self.search_calls = 0

    async def search(self, query: str, limit: int):
        self.search_calls += 1
        return await self.inner.search(query, limit)


def created_event(
    post_id: str,
    content: str,
    created_at: datetime | None = None,
    user_id: str = "user-1",
) -> dict[str, str]:
    """Wire payload for a content.created event."""
    return {
        "postId": post_id,
        "userId": user_id,
        "content": content,
        "createdAt": (created_at or BASE_TIME).isoformat(),
    }


def minutes(n: int) -> timedelta:
    return timedelta(minutes=n)


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        host="127.0.0.1",
        port=8000,
        debug=True,
        index_path=":memory:",
        cache_enabled=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def cache(fake_redis: FakeRedis) -> CacheLayer:
    return CacheLayer(fake_redis, timeout=1.0)  # type: ignore[arg-type]


@pytest.fixture
def index() -> Iterator[SearchIndex]:
    search_index = SearchIndex(":memory:")
    search_index.initialize()
    yield search_index
    search_index.close()


@pytest.fixture
def store(index: SearchIndex) -> IndexStore:
    return IndexStore(index, timeout=5.0)


@pytest.fixture
def spy_store(store: IndexStore) -> SpyStore:
    return SpyStore(store)


@pytest.fixture
def service(spy_store: SpyStore, cache: CacheLayer) -> SearchService:
    return SearchService(spy_store, cache, result_limit=10, cache_ttl=300)  # type: ignore[arg-type]


@pytest.fixture
def consumer(store: IndexStore, cache: CacheLayer) -> EventConsumer:
    return EventConsumer(store, cache)


@pytest.fixture
def client(settings: Settings, cache: CacheLayer) -> Iterator[TestClient]:
    """Create test client with configured app and an in-memory cache."""
    app = create_app(settings, cache=cache)
    with TestClient(app) as test_client:
        yield test_client
