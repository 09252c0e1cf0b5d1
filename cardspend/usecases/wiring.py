"""Collaborator wiring for the use cases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cardspend.emails.extractor import CardUsageExtractor
from cardspend.reports.engine import ReportAggregationEngine
from cardspend.reports.notifier import AlertNotifier, get_notifier
from cardspend.reports.thresholds import ThresholdConfigProvider, get_threshold_provider
from cardspend.stores.base import AlertLevelStore, CardUsageStore, ReportStore
from cardspend.stores.sql import SqlAlertLevelStore, SqlCardUsageStore, SqlReportStore


@dataclass
class Services:
    """Everything a use case may call."""

    extractor: CardUsageExtractor
    usage_store: CardUsageStore
    report_store: ReportStore
    alert_levels: AlertLevelStore
    threshold_provider: ThresholdConfigProvider
    notifier: Optional[AlertNotifier] = None

    def report_engine(self) -> ReportAggregationEngine:
        return ReportAggregationEngine(self.usage_store, self.threshold_provider, self.alert_levels)


# Global instance
_services: Optional[Services] = None


def get_services() -> Services:
    """Get or create the SQL-backed services."""
    global _services
    if _services is None:
        _services = Services(
            extractor=CardUsageExtractor(),
            usage_store=SqlCardUsageStore(),
            report_store=SqlReportStore(),
            alert_levels=SqlAlertLevelStore(),
            threshold_provider=get_threshold_provider(),
            notifier=get_notifier(),
        )
    return _services


def set_services(services: Optional[Services]):
    """Replace the services instance (for testing). None resets to defaults."""
    global _services
    _services = services
