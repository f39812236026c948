"""Content-lifecycle event consumption for index maintenance."""
from search_service.events.consumer import EventConsumer
from search_service.events.types import (
    ContentCreatedEvent,
    ContentDeletedEvent,
    EventOutcome,
    EventStage,
    EventType,
    parse_event,
)

__all__ = [
    "ContentCreatedEvent",
    "ContentDeletedEvent",
    "EventConsumer",
    "EventOutcome",
    "EventStage",
    "EventType",
    "parse_event",
]
