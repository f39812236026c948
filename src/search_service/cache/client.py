"""Best-effort Redis cache with per-key expiry and prefix eviction.

Every call is bounded by a timeout. Backend failures are converted to
CacheUnavailableError, logged, and downgraded to a miss or no-op, so the
service stays correct (if slower) with Redis down or disabled.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, TypeVar

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from search_service.cache.keys import prefix_pattern
from search_service.errors import CacheUnavailableError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_SCAN_BATCH = 500


@dataclass
class CacheStats:
    """In-process counters for cache activity."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    invalidations: int = 0
    errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class CacheLayer:
    """Cache operations over an injected Redis client.

    The client is created by the owner (see from_url) and closed through
    close(). A layer without a client behaves as an always-miss cache.

    Attributes:
        timeout: Seconds allowed per cache call.
    """

    def __init__(
        self,
        client: Redis | None,
        timeout: float = 0.5,
        scan_batch: int = DEFAULT_SCAN_BATCH,
    ) -> None:
        self._client = client
        self.timeout = timeout
        self._scan_batch = scan_batch
        self._stats = CacheStats()

    @classmethod
    def from_url(cls, url: str, timeout: float = 0.5) -> CacheLayer:
        """Create a layer backed by a pooled Redis client for url."""
        client = redis.from_url(  # type: ignore[no-untyped-call]
            url,
            decode_responses=False,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, timeout=timeout)

    @classmethod
    def disabled(cls) -> CacheLayer:
        """Create a layer that never stores anything."""
        return cls(None)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def stats(self) -> CacheStats:
        return self._stats

    async def open(self) -> None:
        """Check connectivity at startup.

        An unreachable backend is logged, not raised: the service starts
        degraded and the client reconnects on later calls.
        """
        if self._client is None:
            logger.info("cache_disabled")
            return
        if await self.ping():
            logger.info("cache_connected")
        else:
            logger.warning("cache_unreachable_at_startup")

    async def close(self) -> None:
        """Release the client's connections."""
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logger.warning("cache_close_failed", error=str(e))
        self._client = None
        logger.info("cache_closed")

    async def _execute(
        self, operation: str, call: Callable[[Redis], Awaitable[T]]
    ) -> T:
        assert self._client is not None
        try:
            return await asyncio.wait_for(call(self._client), timeout=self.timeout)
        except TimeoutError as e:
            raise CacheUnavailableError(
                f"{operation} timed out after {self.timeout}s"
            ) from e
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"{operation} failed: {e}") from e

    def _report(self, operation: str, error: CacheUnavailableError, **context: Any) -> None:
        self._stats.errors += 1
        logger.warning(
            "cache_unavailable", operation=operation, error=str(error), **context
        )

    async def ping(self) -> bool:
        """True if the backend answered a PING within the timeout."""
        if self._client is None:
            return False
        try:
            return bool(await self._execute("ping", lambda c: c.ping()))
        except CacheUnavailableError as e:
            self._report("ping", e)
            return False

    async def get(self, key: str) -> bytes | None:
        """Return the cached bytes for key, or None on a miss or failure."""
        if self._client is None:
            return None
        try:
            value = await self._execute("get", lambda c: c.get(key))
        except CacheUnavailableError as e:
            self._report("get", e, key=key)
            self._stats.misses += 1
            return None

        if value is None:
            self._stats.misses += 1
        else:
            self._stats.hits += 1
        return value

    async def set_with_ttl(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Store value under key for ttl_seconds; failures are logged only."""
        if self._client is None:
            return
        try:
            await self._execute("set", lambda c: c.set(key, value, ex=ttl_seconds))
        except CacheUnavailableError as e:
            self._report("set", e, key=key)
            return
        self._stats.writes += 1

    async def invalidate_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix.

        Scans with SCAN MATCH and deletes in batches. Only keys present at
        scan time are guaranteed to be removed; a write racing the scan may
        survive until it expires.

        Returns:
            Number of keys deleted (0 if the backend failed).
        """
        if self._client is None:
            return 0
        pattern = prefix_pattern(prefix)

        async def sweep(client: Redis) -> int:
            deleted = 0
            batch: list[bytes] = []
            async for key in client.scan_iter(match=pattern, count=self._scan_batch):
                batch.append(key)
                if len(batch) >= self._scan_batch:
                    deleted += await client.delete(*batch)
                    batch = []
            if batch:
                deleted += await client.delete(*batch)
            return deleted

        try:
            deleted = await self._execute("invalidate", sweep)
        except CacheUnavailableError as e:
            self._report("invalidate", e, prefix=prefix)
            return 0

        self._stats.invalidations += 1
        logger.info("cache_invalidated", prefix=prefix, deleted=deleted)
        return deleted
