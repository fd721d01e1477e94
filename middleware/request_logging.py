"""
Request logging middleware.

Provides:
- Request ID generation for correlation (echoed as X-Request-ID)
- Request context bound into structlog contextvars for every log call
- One request_completed event per request with status and timing
- Unhandled exceptions rendered as the generic 500 body, reported to Sentry
"""

from __future__ import annotations

import time
import uuid

import sentry_sdk
import structlog
from fastapi import FastAPI, Request

from errors import internal_error_response, log_unhandled_exception
from shared.logging import get_logger

log = get_logger("image_store.request")

REQUEST_ID_HEADER = "X-Request-ID"


def generate_request_id() -> str:
    """Generate a unique request ID for correlation."""
    return f"req_{uuid.uuid4().hex[:12]}"


def log_request_end(request: Request, status_code: int, duration_ms: int) -> None:
    """Log the end of a request; level follows the status code."""
    if status_code >= 500:
        log_fn = log.error
    elif status_code >= 400:
        log_fn = log.warning
    else:
        log_fn = log.info

    log_fn(
        "request_completed",
        status_code=status_code,
        duration_ms=duration_ms,
        api_key_id=getattr(request.state, "api_key_id", None),
        app_name=getattr(request.state, "app_name", None),
    )


def setup_request_logging(app: FastAPI) -> None:
    """Register the logging middleware on *app*."""

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                # 500s still carry the request id and a request_completed event
                sentry_sdk.capture_exception(exc)
                log_unhandled_exception(request, exc)
                response = internal_error_response()
            duration_ms = int((time.perf_counter() - start) * 1000)
            log_request_end(request, response.status_code, duration_ms)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            structlog.contextvars.clear_contextvars()
