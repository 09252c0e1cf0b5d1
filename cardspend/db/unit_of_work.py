"""One transaction spanning every cardspend repository."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cardspend.db import base as db_base
from cardspend.db.models import AlertLevel, CardUsageRecord, Config, ReportSnapshot
from cardspend.db.repositories import (
    AlertLevelRepository,
    CardUsageRepository,
    ConfigRepository,
    ReportRepository,
)


class UnitOfWork:
    """
    Async context manager opening a session and its repositories.

    A session opened here is committed on a clean exit and closed in every
    case; any exception rolls the transaction back. A session passed in by
    the caller is never committed or closed.

    Usage:
        async with UnitOfWork() as uow:
            previous = await uow.alert_levels.get_level("WEEKLY", start)
            await uow.alert_levels.raise_level("WEEKLY", start, 2)
    """

    card_usages: CardUsageRepository
    reports: ReportRepository
    alert_levels: AlertLevelRepository
    config: ConfigRepository

    def __init__(self, session: Optional[AsyncSession] = None):
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "UnitOfWork":
        if self._owns_session:
            # Looked up at call time so tests can swap the session factory
            self._session = db_base.AsyncSessionLocal()
        session = self._session
        assert session is not None

        self.card_usages = CardUsageRepository(CardUsageRecord, session)
        self.reports = ReportRepository(ReportSnapshot, session)
        self.alert_levels = AlertLevelRepository(AlertLevel, session)
        self.config = ConfigRepository(Config, session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
            elif self._owns_session:
                await self.commit()
        finally:
            if self._owns_session and self._session is not None:
                await self._session.close()

    async def commit(self) -> None:
        if self._session is not None:
            await self._session.commit()

    async def rollback(self) -> None:
        if self._session is not None:
            await self._session.rollback()
