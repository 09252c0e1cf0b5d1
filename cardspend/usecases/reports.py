"""Report generation use case."""

from __future__ import annotations

from datetime import datetime

import structlog
from pydantic import BaseModel

from cardspend.core.errors import AlertDeliveryError, StoreUnavailableError
from cardspend.reports.models import AlertEvent, ReportResult, ReportType
from cardspend.usecases.wiring import Services

logger = structlog.get_logger(__name__)


class GenerateReportRequest(BaseModel):
    report_type: ReportType
    period_start: datetime


class GenerateReport:
    """
    Compute a report, persist its snapshot and dispatch the alert.

    The raised alert level is recorded while the report is computed, so a
    rerun never emits the same event twice. The event is therefore
    dispatched even when the snapshot save fails; the StoreUnavailableError
    is re-raised afterwards and a rerun stores the snapshot. A delivery
    failure raises AlertDeliveryError carrying the event.
    """

    def __init__(self, services: Services):
        self.services = services

    async def execute(self, request: GenerateReportRequest) -> ReportResult:
        result = await self.services.report_engine().generate_report(
            request.report_type, request.period_start
        )

        try:
            saved = await self.services.report_store.save(result.report)
        except StoreUnavailableError as e:
            logger.error(
                "report_snapshot_save_failed",
                report_type=request.report_type.value,
                alert_pending=result.alert is not None,
                error=e.message,
            )
            if result.alert is not None:
                await self._dispatch(request, result.alert)
            raise

        if result.alert is not None:
            await self._dispatch(request, result.alert)

        return ReportResult(report=saved, alert=result.alert)

    async def _dispatch(self, request: GenerateReportRequest, event: AlertEvent) -> None:
        if self.services.notifier is None:
            return
        try:
            await self.services.notifier.send_alert(event)
        except AlertDeliveryError as e:
            e.event = event
            logger.error(
                "alert_delivery_failed",
                report_type=request.report_type.value,
                level=int(event.crossed_level),
                error=e.message,
            )
            raise
