"""Last emitted alert level per report period."""

from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cardspend.db.base import Base


class AlertLevel(Base):
    """
    Idempotency record for alerts.

    One row per (report_type, period_start). ``level`` only ever increases;
    an alert is emitted exactly when a report run raises it.
    """

    __tablename__ = "alert_levels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    report_type: Mapped[str] = mapped_column(String(16), nullable=False)
    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        comment="Inclusive period start (stored in UTC)"
    )
    level: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        comment="Last emitted level (0 = none)"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("report_type", "period_start", name="uq_alert_level_period"),
    )

    def __repr__(self) -> str:
        return f"<AlertLevel(type={self.report_type}, start={self.period_start}, level={self.level})>"
