"""Card usage repository with range queries."""

from datetime import datetime
from typing import List

from cardspend.db.models.card_usage import CardUsageRecord
from cardspend.db.repository import BaseRepository


class CardUsageRepository(BaseRepository[CardUsageRecord]):
    """Repository for CardUsageRecord. Datetimes passed in must already be UTC."""

    async def get_in_range(self, start: datetime, end: datetime) -> List[CardUsageRecord]:
        """
        Get usages with ``start <= datetime_of_use < end``, oldest first.

        Args:
            start: Inclusive lower bound (UTC)
            end: Exclusive upper bound (UTC)
        """
        return await self.filter(
            order_by="datetime_of_use",
            datetime_of_use__gte=start,
            datetime_of_use__lt=end,
        )

