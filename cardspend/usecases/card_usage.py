"""Card usage use cases: create from email, get, delete, list."""

from __future__ import annotations

from datetime import datetime

import structlog
from pydantic import BaseModel, Field

from cardspend.core.errors import AlertDeliveryError, NotFoundError
from cardspend.emails.models import CardCompany, CardUsage
from cardspend.usecases.wiring import Services

logger = structlog.get_logger(__name__)


class CreateCardUsageRequest(BaseModel):
    email_text: str = Field(..., description="Raw email (RFC 822 message or bare body)")
    known_company: CardCompany | None = Field(default=None, description="Skip format detection")


class CardUsageResponse(BaseModel):
    card_usage: CardUsage


class GetCardUsageRequest(BaseModel):
    id: int


class DeleteCardUsageRequest(BaseModel):
    id: int


class DeleteCardUsageResponse(BaseModel):
    deleted: bool


class ListCardUsagesRequest(BaseModel):
    start: datetime = Field(..., description="Inclusive lower bound")
    end: datetime = Field(..., description="Exclusive upper bound")


class ListCardUsagesResponse(BaseModel):
    card_usages: list[CardUsage]


class CreateCardUsage:
    """Extract a usage from an email and store it.

    Extraction errors propagate unchanged and nothing is stored. When a
    notifier is wired, a usage notification follows the store write; its
    failure is logged and does not undo the record.
    """

    def __init__(self, services: Services):
        self.services = services

    async def execute(self, request: CreateCardUsageRequest) -> CardUsageResponse:
        usage = self.services.extractor.extract(request.email_text, request.known_company)
        stored = await self.services.usage_store.create(usage)

        if self.services.notifier is not None:
            try:
                await self.services.notifier.send_card_usage(stored)
            except AlertDeliveryError as e:
                logger.warning("card_usage_notification_failed", id=stored.id, error=e.message)

        return CardUsageResponse(card_usage=stored)


class GetCardUsage:
    def __init__(self, services: Services):
        self.services = services

    async def execute(self, request: GetCardUsageRequest) -> CardUsageResponse:
        usage = await self.services.usage_store.get(request.id)
        if usage is None:
            raise NotFoundError(f"Card usage {request.id} not found", {"id": request.id})
        return CardUsageResponse(card_usage=usage)


class DeleteCardUsage:
    def __init__(self, services: Services):
        self.services = services

    async def execute(self, request: DeleteCardUsageRequest) -> DeleteCardUsageResponse:
        return DeleteCardUsageResponse(deleted=await self.services.usage_store.delete(request.id))


class ListCardUsages:
    def __init__(self, services: Services):
        self.services = services

    async def execute(self, request: ListCardUsagesRequest) -> ListCardUsagesResponse:
        usages = await self.services.usage_store.query_range(request.start, request.end)
        return ListCardUsagesResponse(card_usages=usages)
