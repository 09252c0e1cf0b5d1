"""Threshold table providers.

Every report run asks its provider for the current table; nothing is cached
between runs so a changed table applies to the next run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from cardspend.core.config import get_settings
from cardspend.core.errors import ThresholdConfigUnavailableError
from cardspend.db.unit_of_work import UnitOfWork
from cardspend.reports.models import ReportType, ThresholdTable

logger = structlog.get_logger(__name__)

# Config key of the threshold document:
# {"weekly": {"level1": .., "level2": .., "level3": ..}, "monthly": {...}}
THRESHOLDS_CONFIG_KEY = "report_thresholds"


class ThresholdConfigProvider(ABC):
    """Source of the three-level threshold table per report type."""

    @abstractmethod
    async def get_threshold_table(self, report_type: ReportType) -> ThresholdTable:
        """
        Return the current table.

        Raises:
            ThresholdConfigUnavailableError: If the table is missing,
                incomplete or unreadable
        """


def parse_threshold_table(report_type: ReportType, raw: Any, source: str) -> ThresholdTable:
    """Validate a raw ``{"level1", "level2", "level3"}`` mapping."""
    if raw is None:
        raise ThresholdConfigUnavailableError(
            f"No {report_type.value} thresholds configured",
            {"report_type": report_type.value, "source": source},
        )
    if isinstance(raw, (list, tuple)):
        if len(raw) != 3:
            raise ThresholdConfigUnavailableError(
                f"{report_type.value} thresholds need exactly three levels, got {len(raw)}",
                {"report_type": report_type.value, "source": source},
            )
        raw = {"level1": raw[0], "level2": raw[1], "level3": raw[2]}
    try:
        return ThresholdTable.model_validate(raw)
    except ValidationError as e:
        raise ThresholdConfigUnavailableError(
            f"Invalid {report_type.value} thresholds: {e.error_count()} error(s)",
            {"report_type": report_type.value, "source": source, "errors": e.errors(include_url=False)},
        ) from e


class StaticThresholdProvider(ThresholdConfigProvider):
    """Fixed tables, for tests and embedding."""

    def __init__(self, tables: dict[ReportType, ThresholdTable]):
        self.tables = dict(tables)

    async def get_threshold_table(self, report_type: ReportType) -> ThresholdTable:
        return parse_threshold_table(report_type, self.tables.get(report_type), "static")


class SettingsThresholdProvider(ThresholdConfigProvider):
    """Tables from WEEKLY_THRESHOLDS / MONTHLY_THRESHOLDS settings."""

    async def get_threshold_table(self, report_type: ReportType) -> ThresholdTable:
        settings = get_settings()
        raw = (
            settings.WEEKLY_THRESHOLDS
            if report_type == ReportType.WEEKLY
            else settings.MONTHLY_THRESHOLDS
        )
        return parse_threshold_table(report_type, raw, "settings")


class DatabaseThresholdProvider(ThresholdConfigProvider):
    """Tables from the ``report_thresholds`` JSON config row."""

    async def get_threshold_table(self, report_type: ReportType) -> ThresholdTable:
        try:
            async with UnitOfWork() as uow:
                document = await uow.config.get_value(THRESHOLDS_CONFIG_KEY)
        except (SQLAlchemyError, ValueError) as e:
            logger.error("threshold_config_read_failed", error=str(e))
            raise ThresholdConfigUnavailableError(
                "Threshold config could not be read",
                {"report_type": report_type.value, "source": "database"},
            ) from e

        if not isinstance(document, dict):
            raise ThresholdConfigUnavailableError(
                f"Config '{THRESHOLDS_CONFIG_KEY}' is missing or not a JSON object",
                {"report_type": report_type.value, "source": "database"},
            )
        return parse_threshold_table(report_type, document.get(report_type.value.lower()), "database")


async def save_threshold_tables(tables: dict[ReportType, ThresholdTable]) -> None:
    """Write tables into the ``report_thresholds`` config row, merging with existing ones."""
    async with UnitOfWork() as uow:
        document = await uow.config.get_value(THRESHOLDS_CONFIG_KEY)
        if not isinstance(document, dict):
            document = {}
        for report_type, table in tables.items():
            document[report_type.value.lower()] = table.model_dump()
        await uow.config.set_value(
            THRESHOLDS_CONFIG_KEY,
            document,
            value_type="json",
            description="Report alert thresholds per report type",
        )
    logger.info("threshold_tables_saved", report_types=[t.value for t in tables])


def get_threshold_provider() -> ThresholdConfigProvider:
    """Provider selected by THRESHOLD_SOURCE."""
    if get_settings().THRESHOLD_SOURCE == "settings":
        return SettingsThresholdProvider()
    return DatabaseThresholdProvider()
