"""Data models for reports, threshold tables and alerts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator


class ReportType(str, Enum):
    """Aggregation window of a report."""

    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class ThresholdLevel(IntEnum):
    """Alert level reached by a period total. 0 means no level."""

    NONE = 0
    LEVEL1 = 1
    LEVEL2 = 2
    LEVEL3 = 3


class ThresholdTable(BaseModel):
    """Minimum cumulative amount for each level of one report type."""

    model_config = ConfigDict(frozen=True)

    level1: PositiveInt = Field(..., description="Pace warning")
    level2: PositiveInt = Field(..., description="Review spending")
    level3: PositiveInt = Field(..., description="Budget greatly exceeded")

    @model_validator(mode="after")
    def _strictly_increasing(self) -> ThresholdTable:
        if not self.level1 < self.level2 < self.level3:
            raise ValueError(
                f"Thresholds must satisfy level1 < level2 < level3, got "
                f"{self.level1}, {self.level2}, {self.level3}"
            )
        return self

    def for_level(self, level: ThresholdLevel) -> int:
        """Threshold amount of a level (0 for NONE)."""
        return {
            ThresholdLevel.NONE: 0,
            ThresholdLevel.LEVEL1: self.level1,
            ThresholdLevel.LEVEL2: self.level2,
            ThresholdLevel.LEVEL3: self.level3,
        }[level]

    def crossed_level(self, total_amount: int) -> ThresholdLevel:
        """Highest level whose threshold ``total_amount`` reaches, checked high to low."""
        for level in (ThresholdLevel.LEVEL3, ThresholdLevel.LEVEL2, ThresholdLevel.LEVEL1):
            if total_amount >= self.for_level(level):
                return level
        return ThresholdLevel.NONE


class Report(BaseModel):
    """Aggregate of card usage over one half-open period."""

    model_config = ConfigDict(frozen=True)

    report_type: ReportType
    period_start: datetime = Field(..., description="Inclusive, reference timezone")
    period_end: datetime = Field(..., description="Exclusive, reference timezone")
    total_amount: int = Field(..., ge=0)
    usage_count: int = Field(..., ge=0)
    crossed_level: ThresholdLevel | None = Field(default=None, description="None when no level is reached")
    generated_at: datetime | None = Field(default=None, description="Set when read back from a store")


class AlertEvent(BaseModel):
    """Emitted when a report run raises the recorded level of its period."""

    model_config = ConfigDict(frozen=True)

    report_type: ReportType
    period_start: datetime
    period_end: datetime
    crossed_level: ThresholdLevel
    previous_level: ThresholdLevel = ThresholdLevel.NONE
    total_amount: int
    usage_count: int = 0
    threshold: int = Field(..., description="Threshold amount of crossed_level")


class ReportResult(BaseModel):
    """Outcome of one report run."""

    report: Report
    alert: AlertEvent | None = None
