"""Report snapshot repository."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select

from cardspend.db.models.report import ReportSnapshot
from cardspend.db.repository import BaseRepository


class ReportRepository(BaseRepository[ReportSnapshot]):
    """Repository for ReportSnapshot. Datetimes passed in must already be UTC."""

    async def get_snapshot(
        self, report_type: str, period_start: datetime
    ) -> Optional[ReportSnapshot]:
        """Get the snapshot of one period, or None if never generated."""
        result = await self.session.execute(
            select(ReportSnapshot).where(
                ReportSnapshot.report_type == report_type,
                ReportSnapshot.period_start == period_start,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_snapshot(
        self,
        report_type: str,
        period_start: datetime,
        period_end: datetime,
        total_amount: int,
        usage_count: int,
        crossed_level: Optional[int],
    ) -> ReportSnapshot:
        """
        Create or overwrite the snapshot of one period.

        Returns:
            The stored ReportSnapshot
        """
        existing = await self.get_snapshot(report_type, period_start)
        if existing is None:
            return await self.create(
                report_type=report_type,
                period_start=period_start,
                period_end=period_end,
                total_amount=total_amount,
                usage_count=usage_count,
                crossed_level=crossed_level,
            )

        existing.period_end = period_end
        existing.total_amount = total_amount
        existing.usage_count = usage_count
        existing.crossed_level = crossed_level
        existing.generated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return existing
