"""Health check endpoints for liveness and readiness probes."""
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from search_service.cache import CacheLayer
from search_service.errors import StoreUnavailableError
from search_service.search.store import IndexStore

router = APIRouter(prefix="/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Response model for liveness probe.

    Attributes:
        status: Always 'alive' when process is running.
    """

    status: Literal["alive"]


class ReadinessCheck(BaseModel):
    """Individual dependency check result.

    Attributes:
        name: Identifier for the dependency being checked.
        status: 'ok', 'degraded' for an optional dependency that is down,
            'disabled' for one switched off, or 'failed'.
        message: Error details when the check did not pass.
        details: Dependency-specific figures.
    """

    name: str
    status: Literal["ok", "degraded", "disabled", "failed"]
    message: str | None = None
    details: dict[str, int] | None = None


class ReadinessResponse(BaseModel):
    """Response model for readiness probe.

    Attributes:
        status: Overall readiness ('ready' or 'not_ready').
        checks: List of individual dependency check results.
    """

    status: Literal["ready", "not_ready"]
    checks: list[ReadinessCheck]


async def _check_index(store: IndexStore) -> ReadinessCheck:
    """Verify the index store answers queries.

    Args:
        store: Active index store.

    Returns:
        Check result with the live document count.
    """
    try:
        count = await store.count()
    except StoreUnavailableError as e:
        return ReadinessCheck(name="index", status="failed", message=str(e))
    return ReadinessCheck(name="index", status="ok", details={"documents": count})


async def _check_cache(cache: CacheLayer) -> ReadinessCheck:
    """Verify the cache backend responds.

    The cache is optional, so an outage reports 'degraded' rather than
    'failed'.

    Args:
        cache: Active cache layer.

    Returns:
        Check result with the cache counters.
    """
    if not cache.enabled:
        return ReadinessCheck(name="cache", status="disabled")
    if await cache.ping():
        return ReadinessCheck(name="cache", status="ok", details=cache.stats.as_dict())
    return ReadinessCheck(
        name="cache",
        status="degraded",
        message="Cache unreachable, serving from index",
        details=cache.stats.as_dict(),
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe endpoint.

    Returns immediate success if the process is running.

    Returns:
        Liveness status response.
    """
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    Returns 200 if the index store is reachable, 503 otherwise. The cache
    never makes the service not-ready.

    Returns:
        Readiness status with individual check results.
    """
    checks = [
        await _check_index(request.app.state.index_store),
        await _check_cache(request.app.state.cache),
    ]
    ready = all(c.status != "failed" for c in checks)
    response = ReadinessResponse(
        status="ready" if ready else "not_ready",
        checks=checks,
    )
    code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=code)
