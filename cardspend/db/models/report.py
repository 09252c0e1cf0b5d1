"""Report snapshot model."""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cardspend.db.base import Base


class ReportSnapshot(Base):
    """
    Last computed aggregate for one report period.

    Reports are derived data; a regeneration overwrites the snapshot of the
    same (report_type, period_start).
    """

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    report_type: Mapped[str] = mapped_column(
        String(16), nullable=False,
        comment="WEEKLY or MONTHLY"
    )
    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        comment="Inclusive period start (stored in UTC)"
    )
    period_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        comment="Exclusive period end (stored in UTC)"
    )
    total_amount: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        comment="Sum of usage amounts in the period"
    )
    usage_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        comment="Number of usages in the period"
    )
    crossed_level: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True,
        comment="Highest threshold level reached (1-3), NULL when none"
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc),
        comment="When this snapshot was computed"
    )

    __table_args__ = (
        UniqueConstraint("report_type", "period_start", name="uq_report_period"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReportSnapshot(type={self.report_type}, start={self.period_start}, "
            f"total={self.total_amount}, level={self.crossed_level})>"
        )
