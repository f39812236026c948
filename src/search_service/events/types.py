"""Content-lifecycle event types consumed by the indexer."""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from search_service.errors import ValidationError


class EventType(str, Enum):
    """Upstream content-lifecycle event types."""

    CONTENT_CREATED = "content.created"
    CONTENT_DELETED = "content.deleted"


class EventStage(str, Enum):
    """How far an event got through processing."""

    RECEIVED = "received"
    APPLIED = "applied"
    CACHE_INVALIDATED = "cache_invalidated"
    ACKNOWLEDGED = "acknowledged"


class ContentCreatedEvent(BaseModel):
    """A content item was published.

    Fields beyond the ones consumed here are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    post_id: str = Field(alias="postId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    content: str
    created_at: datetime = Field(alias="createdAt")


class ContentDeletedEvent(BaseModel):
    """A content item was removed."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    post_id: str = Field(alias="postId", min_length=1)


ContentEvent = ContentCreatedEvent | ContentDeletedEvent

_EVENT_MODELS: dict[EventType, type[ContentCreatedEvent] | type[ContentDeletedEvent]] = {
    EventType.CONTENT_CREATED: ContentCreatedEvent,
    EventType.CONTENT_DELETED: ContentDeletedEvent,
}


class EventOutcome(BaseModel):
    """Result of processing one event.

    Attributes:
        type: Event type that was processed.
        post_id: Post the event referred to.
        stage: Last stage reached.
        duplicate: True if the event had already been applied.
        cache_keys_evicted: Number of cache entries removed by invalidation.
    """

    type: EventType
    post_id: str
    stage: EventStage
    duplicate: bool = False
    cache_keys_evicted: int = 0

    @property
    def acknowledged(self) -> bool:
        return self.stage is EventStage.ACKNOWLEDGED


def parse_event(event_type: str, payload: Any) -> ContentEvent:
    """Validate a raw payload into a typed event.

    Args:
        event_type: Wire name of the event, e.g. "content.created".
        payload: Decoded event body.

    Returns:
        The typed event.

    Raises:
        ValidationError: If the type is unknown or required fields are
            missing or invalid.
    """
    try:
        kind = EventType(event_type)
    except ValueError as e:
        raise ValidationError(f"Unknown event type: {event_type!r}") from e

    model = _EVENT_MODELS[kind]
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ValidationError(
            f"Malformed {kind.value} event: invalid or missing {', '.join(fields) or 'payload'}"
        ) from e
