"""
Error types raised by the analytics service and their HTTP translation.

  InvalidFilterError → 400, JSON body naming the offending parameter
  StoreError         → 500, plain-text body with the failure message
  anything else      → 500, plain-text generic body, logged with traceback
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from engagement_api.config import settings
from engagement_api.telemetry import UNHANDLED_ERRORS_TOTAL

logger = logging.getLogger(__name__)

GENERIC_STORE_ERROR = "Analytics query failed"
GENERIC_SERVER_ERROR = "Internal Server Error"


class InvalidFilterError(ValueError):
    """A query-string filter was malformed or conflicted with another one."""

    def __init__(self, parameter: str, detail: str) -> None:
        super().__init__(f"{parameter}: {detail}")
        self.parameter = parameter
        self.detail = detail


class StoreError(Exception):
    """Query execution against the relational store failed."""

    def __init__(self, message: str, intent: str = "unknown") -> None:
        super().__init__(message)
        self.message = message
        self.intent = intent


async def invalid_filter_handler(request: Request, exc: InvalidFilterError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "invalid_filter",
            "parameter": exc.parameter,
            "detail": exc.detail,
        },
    )


async def store_error_handler(request: Request, exc: StoreError) -> PlainTextResponse:
    logger.error(
        "Query failed (intent=%s, path=%s): %s", exc.intent, request.url.path, exc.message
    )
    body = exc.message if settings.expose_store_errors else GENERIC_STORE_ERROR
    return PlainTextResponse(body, status_code=500)


async def unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
    UNHANDLED_ERRORS_TOTAL.inc()
    logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
    return PlainTextResponse(GENERIC_SERVER_ERROR, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidFilterError, invalid_filter_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
