"""Repository exports."""

from .card_usage_repository import CardUsageRepository
from .report_repository import ReportRepository
from .alert_level_repository import AlertLevelRepository
from .config_repository import ConfigRepository

__all__ = [
    "CardUsageRepository",
    "ReportRepository",
    "AlertLevelRepository",
    "ConfigRepository",
]
