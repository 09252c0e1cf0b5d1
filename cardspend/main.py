from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from cardspend.core.config import get_settings
from cardspend.core.errors import (
    CardSpendError,
    ExtractionError,
    FieldExtractionError,
    InvalidPeriodError,
    NotFoundError,
)
from cardspend.core.logging import configure_logging, request_id_middleware
from cardspend.emails.imap_connector import IMAPMailboxGateway
from cardspend.emails.router import router as card_usages_router
from cardspend.reports.router import router as reports_router
from cardspend.usecases.card_usage import CreateCardUsage, CreateCardUsageRequest
from cardspend.usecases.wiring import get_services

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.ENV)


async def store_email(raw_text: str) -> None:
    """Mailbox callback: extract and store one email, logging rejects.

    Store errors propagate so the gateway leaves the message unseen.
    """
    try:
        response = await CreateCardUsage(get_services()).execute(
            CreateCardUsageRequest(email_text=raw_text)
        )
    except ExtractionError as e:
        logger.warning(f"[MAILBOX] Email needs manual review: {type(e).__name__}: {e.message}")
        return
    logger.info(f"[MAILBOX] ✓ Stored card usage {response.card_usage.id}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the mailbox gateway when configured, stop it on shutdown."""
    logger.info("=" * 70)
    logger.info("🚀 Starting cardspend...")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Reference timezone: {settings.REFERENCE_TIMEZONE}")
    logger.info("=" * 70)

    gateway = None
    gateway_task = None
    if settings.MAILBOX_AUTO_START:
        try:
            gateway = IMAPMailboxGateway.from_settings()
            gateway_task = asyncio.create_task(gateway.connect(settings.IMAP_MAILBOX, store_email))
            logger.info(f"✓ Mailbox gateway started ({settings.IMAP_MAILBOX})")
        except ValueError as e:
            logger.error(f"✗ Mailbox gateway not started: {e}")
    else:
        logger.info("Mailbox gateway disabled (MAILBOX_AUTO_START=false)")

    yield

    logger.info("🛑 Shutting down cardspend...")
    if gateway is not None and gateway_task is not None:
        await gateway.stop()
        await gateway_task
        logger.info("✓ Mailbox gateway stopped")


app = FastAPI(title="cardspend", version="0.1.0", lifespan=lifespan)
app.middleware("http")(request_id_middleware)
app.include_router(card_usages_router)
app.include_router(reports_router)


def _status_for(exc: CardSpendError) -> int:
    if isinstance(exc, ExtractionError):
        return 422
    if isinstance(exc, InvalidPeriodError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if exc.retryable:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(CardSpendError)
async def cardspend_error_handler(request: Request, exc: CardSpendError):
    body = {
        "error": type(exc).__name__,
        "message": exc.message,
        "retryable": exc.retryable,
    }
    if isinstance(exc, FieldExtractionError):
        body["field"] = exc.field
    return JSONResponse(status_code=_status_for(exc), content=body)


@app.get("/")
def health_check():
    logger.debug("Health check endpoint called")
    return {"status": "ok"}


@app.get("/healthz")
def healthz():
    logger.debug(f"Healthz endpoint called (env: {settings.ENV})")
    return {"status": "healthy", "env": settings.ENV}
