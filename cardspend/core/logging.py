"""structlog setup and the request-scoped logging middleware."""

from __future__ import annotations

import logging
import sys
import time
import uuid
from typing import Any

import structlog
from fastapi import Request

REQUEST_ID_HEADER = "x-request-id"


def configure_logging(env: str = "development") -> None:
    """Route stdlib and structlog output to stdout.

    Production renders JSON lines (non-ASCII kept readable, merchant names are
    Japanese); other environments use the colored console renderer at DEBUG.
    """
    production = env == "production"
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.INFO if production else logging.DEBUG,
    )

    renderer: Any = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if production
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def request_id_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Bind a request id for the duration of one request and log its latency."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
    started = time.perf_counter()

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        structlog.get_logger("cardspend.request").info(
            "request_completed",
            method=request.method,
            status=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        structlog.contextvars.clear_contextvars()

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
