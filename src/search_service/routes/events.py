"""Inbound content-lifecycle event ingestion."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from search_service.errors import StoreUnavailableError, ValidationError
from search_service.events.types import EventStage
from search_service.responses import ErrorResponse, error_response

if TYPE_CHECKING:
    from search_service.events.consumer import EventConsumer

router = APIRouter(prefix="/events", tags=["events"])


class EventAck(BaseModel):
    """Acknowledgement of a processed event.

    Attributes:
        success: Always True.
        stage: Final processing stage (acknowledged).
        post_id: Post the event referred to.
        duplicate: True if the event had no effect because it was already applied.
    """

    success: bool = True
    stage: EventStage
    post_id: str = Field(serialization_alias="postId")
    duplicate: bool


@router.post(
    "/{event_type}",
    response_model=EventAck,
    responses={
        422: {"model": ErrorResponse, "description": "Malformed event, do not retry"},
        503: {"model": ErrorResponse, "description": "Not applied, retry later"},
    },
    summary="Deliver a content-lifecycle event",
)
async def receive_event(
    request: Request,
    event_type: str,
    payload: dict[str, Any] = Body(...),
) -> EventAck | JSONResponse:
    """Apply a content.created or content.deleted event to the index.

    Delivery is expected to be at-least-once: redelivering an event is
    safe, and a 503 asks the sender to retry.

    Args:
        request: FastAPI request (provides access to app state).
        event_type: "content.created" or "content.deleted".
        payload: Event body.

    Returns:
        Acknowledgement once the index is updated and the cache swept.
    """
    consumer: EventConsumer = request.app.state.event_consumer

    try:
        outcome = await consumer.dispatch(event_type, payload)
    except ValidationError as e:
        return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, str(e))
    except StoreUnavailableError:
        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Search index unavailable, event not applied",
        )

    return EventAck(
        stage=outcome.stage, post_id=outcome.post_id, duplicate=outcome.duplicate
    )
