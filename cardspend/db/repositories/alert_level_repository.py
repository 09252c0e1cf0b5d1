"""Alert level repository with the compare-and-raise update."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update

from cardspend.db.models.alert_level import AlertLevel
from cardspend.db.repository import BaseRepository


class AlertLevelRepository(BaseRepository[AlertLevel]):
    """Repository for AlertLevel. Datetimes passed in must already be UTC."""

    async def get_level(self, report_type: str, period_start: datetime) -> Optional[int]:
        """Return the recorded level, or None when no row exists."""
        result = await self.session.execute(
            select(AlertLevel.level).where(
                AlertLevel.report_type == report_type,
                AlertLevel.period_start == period_start,
            )
        )
        return result.scalar_one_or_none()

    async def raise_level(self, report_type: str, period_start: datetime, level: int) -> bool:
        """
        Set ``level`` only where the stored level is lower.

        Single conditional UPDATE, so concurrent callers cannot both win.

        Returns:
            True if a row was raised
        """
        result = await self.session.execute(
            update(AlertLevel)
            .where(
                AlertLevel.report_type == report_type,
                AlertLevel.period_start == period_start,
                AlertLevel.level < level,
            )
            .values(level=level, updated_at=datetime.now(timezone.utc))
        )
        await self.session.flush()
        return (result.rowcount or 0) > 0  # type: ignore

    async def insert_level(self, report_type: str, period_start: datetime, level: int) -> AlertLevel:
        """Insert the first row of a period. Raises IntegrityError if one exists."""
        return await self.create(report_type=report_type, period_start=period_start, level=level)
