"""Report aggregation and threshold alert engine."""

from __future__ import annotations

from datetime import datetime

import structlog

from cardspend.reports.models import AlertEvent, Report, ReportResult, ReportType, ThresholdLevel
from cardspend.reports.periods import period_end, validate_period_start
from cardspend.reports.thresholds import ThresholdConfigProvider
from cardspend.stores.base import AlertLevelStore, CardUsageStore

logger = structlog.get_logger(__name__)


class ReportAggregationEngine:
    """
    Sums card usage over a period and decides whether to alert.

    Steps:
    1. Validate the period start and compute its exclusive end
    2. Range-query the usage store and sum exactly
    3. Read the current threshold table and find the crossed level
    4. Compare-and-raise the recorded level; alert only when it rose

    The engine does not persist reports or deliver alerts; the
    GenerateReport use case does both.
    """

    def __init__(
        self,
        usage_store: CardUsageStore,
        threshold_provider: ThresholdConfigProvider,
        alert_levels: AlertLevelStore,
    ):
        self.usage_store = usage_store
        self.threshold_provider = threshold_provider
        self.alert_levels = alert_levels

    async def generate_report(self, report_type: ReportType, period_start: datetime) -> ReportResult:
        """
        Compute the report of one period.

        Args:
            report_type: WEEKLY or MONTHLY
            period_start: Period boundary; naive values are reference-timezone time

        Returns:
            The report and, when this run raised the recorded level, an AlertEvent

        Raises:
            InvalidPeriodError: If period_start is not a period boundary
            ThresholdConfigUnavailableError: If the threshold table cannot be read
            StoreUnavailableError: If a store cannot be reached
        """
        start = validate_period_start(report_type, period_start)
        end = period_end(report_type, start)
        log = logger.bind(report_type=report_type.value, period_start=start.isoformat())

        usages = await self.usage_store.query_range(start, end)
        total_amount = sum(u.amount for u in usages)
        usage_count = len(usages)

        table = await self.threshold_provider.get_threshold_table(report_type)
        level = table.crossed_level(total_amount)

        report = Report(
            report_type=report_type,
            period_start=start,
            period_end=end,
            total_amount=total_amount,
            usage_count=usage_count,
            crossed_level=level if level != ThresholdLevel.NONE else None,
        )

        raised, previous = await self.alert_levels.set_level_if_greater(report_type, start, level)

        alert = None
        if raised:
            alert = AlertEvent(
                report_type=report_type,
                period_start=start,
                period_end=end,
                crossed_level=level,
                previous_level=previous,
                total_amount=total_amount,
                usage_count=usage_count,
                threshold=table.for_level(level),
            )
            log.info("alert_level_raised", previous_level=int(previous), level=int(level), total=total_amount)

        log.info(
            "report_generated",
            total=total_amount,
            count=usage_count,
            crossed_level=int(level),
            alert=raised,
        )
        return ReportResult(report=report, alert=alert)
