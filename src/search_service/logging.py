"""Structured logging configuration using structlog."""

import logging
import sys
from collections.abc import Callable, MutableMapping
from typing import Any

import structlog

SERVICE_NAME = "search"

Processor = Callable[[Any, str, MutableMapping[str, Any]], MutableMapping[str, Any]]


def add_service_name(service: str) -> Processor:
    """Build a processor that stamps every event with the service name.

    Request-scoped contextvars are cleared per request, so the service name
    is added by a processor rather than bound once at startup.

    Args:
        service: Name reported in the "service" field.

    Returns:
        structlog processor.
    """

    def processor(
        logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_logging(debug: bool = False, service: str = SERVICE_NAME) -> None:
    """Configure structlog for JSON output.

    Args:
        debug: Enable debug-level logging when True.
        service: Service name added to every log line.
    """
    level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service_name(service),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # redis-py logs reconnect chatter at INFO; failures are reported by the cache layer
    logging.getLogger("redis").setLevel(logging.WARNING)

    for name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
