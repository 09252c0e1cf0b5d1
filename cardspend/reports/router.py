"""FastAPI router for reports."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cardspend.core.errors import NotFoundError
from cardspend.reports.models import Report, ReportResult, ReportType
from cardspend.reports.periods import current_period_start, validate_period_start
from cardspend.usecases.reports import GenerateReport, GenerateReportRequest
from cardspend.usecases.wiring import Services, get_services

router = APIRouter(prefix="/reports", tags=["reports"])


class GenerateReportBody(BaseModel):
    report_type: ReportType
    period_start: datetime | None = Field(
        default=None, description="Period boundary; the current period when omitted"
    )


@router.post("/generate", response_model=ReportResult)
async def generate_report(body: GenerateReportBody, services: Services = Depends(get_services)):
    """Recompute a report, store its snapshot and dispatch a new alert if any."""
    period_start = body.period_start or current_period_start(
        body.report_type, datetime.now(timezone.utc)
    )
    return await GenerateReport(services).execute(
        GenerateReportRequest(report_type=body.report_type, period_start=period_start)
    )


@router.get("/{report_type}/{period_start}", response_model=Report)
async def get_report(
    report_type: ReportType, period_start: datetime, services: Services = Depends(get_services)
):
    """Last stored snapshot of a period."""
    start = validate_period_start(report_type, period_start)
    report = await services.report_store.get(report_type, start)
    if report is None:
        raise NotFoundError(
            f"No {report_type.value} report for {start.date().isoformat()}",
            {"report_type": report_type.value, "period_start": start.isoformat()},
        )
    return report
