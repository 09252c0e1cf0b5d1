"""Store interfaces used by the use cases and the report engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from cardspend.emails.models import CardUsage
from cardspend.reports.models import Report, ReportType, ThresholdLevel


class CardUsageStore(ABC):
    """Durable card usage records."""

    @abstractmethod
    async def create(self, usage: CardUsage) -> CardUsage:
        """Persist a usage and return it with ``id`` and ``created_at`` set."""

    @abstractmethod
    async def get(self, usage_id: int) -> CardUsage | None:
        """Return the usage or None."""

    @abstractmethod
    async def delete(self, usage_id: int) -> bool:
        """Delete a usage. False if it did not exist."""

    @abstractmethod
    async def query_range(self, start: datetime, end: datetime) -> list[CardUsage]:
        """Usages with ``start <= datetime_of_use < end``, oldest first."""


class AlertLevelStore(ABC):
    """Last emitted alert level per (report_type, period_start)."""

    @abstractmethod
    async def get_last_level(self, report_type: ReportType, period_start: datetime) -> ThresholdLevel:
        """Recorded level, NONE when nothing was recorded."""

    @abstractmethod
    async def set_level_if_greater(
        self, report_type: ReportType, period_start: datetime, level: ThresholdLevel
    ) -> tuple[bool, ThresholdLevel]:
        """
        Atomically raise the recorded level to ``level`` if it is lower.

        Returns:
            (raised, previous_level)
        """


class ReportStore(ABC):
    """Last snapshot of each report period."""

    @abstractmethod
    async def save(self, report: Report) -> Report:
        """Upsert the snapshot of ``(report_type, period_start)``."""

    @abstractmethod
    async def get(self, report_type: ReportType, period_start: datetime) -> Report | None:
        """Return the stored snapshot or None."""
