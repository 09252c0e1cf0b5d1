"""FastAPI router for card usages."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from cardspend.usecases.card_usage import (
    CardUsageResponse,
    CreateCardUsage,
    CreateCardUsageRequest,
    DeleteCardUsage,
    DeleteCardUsageRequest,
    DeleteCardUsageResponse,
    GetCardUsage,
    GetCardUsageRequest,
    ListCardUsages,
    ListCardUsagesRequest,
    ListCardUsagesResponse,
)
from cardspend.usecases.wiring import Services, get_services

router = APIRouter(prefix="/card-usages", tags=["card-usages"])


@router.post("", response_model=CardUsageResponse, status_code=status.HTTP_201_CREATED)
async def create_card_usage(
    request: CreateCardUsageRequest, services: Services = Depends(get_services)
):
    """Extract a card usage from raw email text and store it.

    Unrecognized or malformed emails answer 422 with the failing field.
    """
    return await CreateCardUsage(services).execute(request)


@router.get("", response_model=ListCardUsagesResponse)
async def list_card_usages(
    start: datetime = Query(..., description="Inclusive lower bound"),
    end: datetime = Query(..., description="Exclusive upper bound"),
    services: Services = Depends(get_services),
):
    """List usages with start <= datetime_of_use < end, oldest first."""
    return await ListCardUsages(services).execute(ListCardUsagesRequest(start=start, end=end))


@router.get("/{usage_id}", response_model=CardUsageResponse)
async def get_card_usage(usage_id: int, services: Services = Depends(get_services)):
    return await GetCardUsage(services).execute(GetCardUsageRequest(id=usage_id))


@router.delete("/{usage_id}", response_model=DeleteCardUsageResponse)
async def delete_card_usage(usage_id: int, services: Services = Depends(get_services)):
    return await DeleteCardUsage(services).execute(DeleteCardUsageRequest(id=usage_id))
