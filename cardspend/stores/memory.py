"""In-memory stores for tests and embedding."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone

from cardspend.core.dates import to_reference, to_storage
from cardspend.emails.models import CardUsage
from cardspend.reports.models import Report, ReportType, ThresholdLevel
from cardspend.stores.base import AlertLevelStore, CardUsageStore, ReportStore


class InMemoryCardUsageStore(CardUsageStore):
    def __init__(self):
        self._usages: dict[int, CardUsage] = {}
        self._ids = itertools.count(1)

    async def create(self, usage: CardUsage) -> CardUsage:
        stored = usage.model_copy(
            update={"id": next(self._ids), "created_at": datetime.now(timezone.utc)}
        )
        self._usages[stored.id] = stored
        return stored

    async def get(self, usage_id: int) -> CardUsage | None:
        return self._usages.get(usage_id)

    async def delete(self, usage_id: int) -> bool:
        return self._usages.pop(usage_id, None) is not None

    async def query_range(self, start: datetime, end: datetime) -> list[CardUsage]:
        start, end = to_storage(start), to_storage(end)
        found = [u for u in self._usages.values() if start <= u.datetime_of_use < end]
        return sorted(found, key=lambda u: (u.datetime_of_use, u.id))


class InMemoryAlertLevelStore(AlertLevelStore):
    """Compare-and-raise under an asyncio.Lock."""

    def __init__(self):
        self._levels: dict[tuple[ReportType, datetime], ThresholdLevel] = {}
        self._lock = asyncio.Lock()

    async def get_last_level(self, report_type: ReportType, period_start: datetime) -> ThresholdLevel:
        return self._levels.get((report_type, to_storage(period_start)), ThresholdLevel.NONE)

    async def set_level_if_greater(
        self, report_type: ReportType, period_start: datetime, level: ThresholdLevel
    ) -> tuple[bool, ThresholdLevel]:
        key = (report_type, to_storage(period_start))
        async with self._lock:
            previous = self._levels.get(key, ThresholdLevel.NONE)
            if level > previous:
                self._levels[key] = ThresholdLevel(level)
                return True, previous
            return False, previous


class InMemoryReportStore(ReportStore):
    def __init__(self):
        self._reports: dict[tuple[ReportType, datetime], Report] = {}

    async def save(self, report: Report) -> Report:
        stored = report.model_copy(update={"generated_at": datetime.now(timezone.utc)})
        self._reports[(report.report_type, to_storage(report.period_start))] = stored
        return stored

    async def get(self, report_type: ReportType, period_start: datetime) -> Report | None:
        report = self._reports.get((report_type, to_storage(period_start)))
        if report is None:
            return None
        return report.model_copy(
            update={
                "period_start": to_reference(report.period_start),
                "period_end": to_reference(report.period_end),
            }
        )
