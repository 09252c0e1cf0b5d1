"""Database models for card usage tracking."""

from .card_usage import CardUsageRecord
from .report import ReportSnapshot
from .alert_level import AlertLevel
from .config import Config

__all__ = ["CardUsageRecord", "ReportSnapshot", "AlertLevel", "Config"]
