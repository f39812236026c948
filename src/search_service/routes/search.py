"""Full-text search API endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from search_service.errors import StoreUnavailableError
from search_service.responses import ErrorResponse, error_response
from search_service.search.schemas import SearchResult

if TYPE_CHECKING:
    from search_service.search.service import SearchService

logger = structlog.get_logger()

router = APIRouter(tags=["search"])

SEARCH_FAILED_MESSAGE = "Error while searching post"


@router.get(
    "/search",
    response_model=list[SearchResult],
    responses={
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Full-text search across posts",
    description="Ranked full-text search served through a short-lived result cache.",
)
async def search(
    request: Request,
    query: str = Query(
        ...,
        description="Search query string",
    ),
) -> list[SearchResult] | JSONResponse:
    """Search indexed posts.

    Args:
        request: FastAPI request (provides access to app state).
        query: Raw search query; an empty string matches nothing.

    Returns:
        Up to ten posts ordered by relevance, newest first on ties.
    """
    service: SearchService = request.app.state.search_service

    try:
        documents = await service.search(query)
    except StoreUnavailableError as e:
        logger.error("search_failed", query=query, error=str(e))
        return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, SEARCH_FAILED_MESSAGE)
    except Exception as e:
        logger.error("search_failed", query=query, error=str(e), exc_info=e)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, SEARCH_FAILED_MESSAGE
        )

    return [SearchResult.from_document(doc) for doc in documents]
