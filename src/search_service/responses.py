"""Structured error bodies and exception handlers for the HTTP surface."""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = structlog.get_logger()


class ErrorResponse(BaseModel):
    """Failure envelope returned instead of partial results.

    Attributes:
        success: Always False.
        message: Human-readable summary without internal detail.
    """

    success: bool = False
    message: str


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build a JSON failure response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = sorted(
        {str(err["loc"][-1]) for err in exc.errors() if err.get("loc")}
    )
    logger.info("request_rejected", path=request.url.path, fields=fields)
    detail = f"Invalid request parameter: {', '.join(fields)}" if fields else "Invalid request"
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, detail)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, error=str(exc), exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers that render failures as ErrorResponse bodies."""
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)
