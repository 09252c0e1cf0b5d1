"""SQLAlchemy-backed stores.

Each operation runs in its own UnitOfWork. Driver failures surface as
StoreUnavailableError; timestamps go in as UTC and come out in the
reference timezone.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError

from cardspend.core.dates import from_storage, to_storage
from cardspend.core.errors import StoreUnavailableError
from cardspend.db.models import CardUsageRecord, ReportSnapshot
from cardspend.db.unit_of_work import UnitOfWork
from cardspend.emails.models import CardCompany, CardUsage
from cardspend.reports.models import Report, ReportType, ThresholdLevel
from cardspend.stores.base import AlertLevelStore, CardUsageStore, ReportStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def store_errors(operation: str):
    """Translate driver errors into StoreUnavailableError."""
    try:
        yield
    except DBAPIError as e:
        logger.error("store_unavailable", operation=operation, error=str(e.orig or e))
        raise StoreUnavailableError(
            f"Store unavailable during {operation}", {"operation": operation}
        ) from e


def _to_usage(record: CardUsageRecord) -> CardUsage:
    return CardUsage(
        id=record.id,
        card_name=record.card_name,
        amount=record.amount,
        where_to_use=record.where_to_use,
        datetime_of_use=from_storage(record.datetime_of_use),
        card_company=CardCompany(record.card_company),
        created_at=from_storage(record.created_at),
    )


def _to_report(snapshot: ReportSnapshot) -> Report:
    return Report(
        report_type=ReportType(snapshot.report_type),
        period_start=from_storage(snapshot.period_start),
        period_end=from_storage(snapshot.period_end),
        total_amount=snapshot.total_amount,
        usage_count=snapshot.usage_count,
        crossed_level=(
            ThresholdLevel(snapshot.crossed_level) if snapshot.crossed_level else None
        ),
        generated_at=from_storage(snapshot.generated_at),
    )


class SqlCardUsageStore(CardUsageStore):
    async def create(self, usage: CardUsage) -> CardUsage:
        async with store_errors("create_card_usage"):
            async with UnitOfWork() as uow:
                record = await uow.card_usages.create(
                    card_name=usage.card_name,
                    amount=usage.amount,
                    where_to_use=usage.where_to_use,
                    datetime_of_use=to_storage(usage.datetime_of_use),
                    card_company=usage.card_company.value,
                )
                stored = _to_usage(record)
        logger.info("card_usage_created", id=stored.id, company=stored.card_company.value, amount=stored.amount)
        return stored

    async def get(self, usage_id: int) -> CardUsage | None:
        async with store_errors("get_card_usage"):
            async with UnitOfWork() as uow:
                record = await uow.card_usages.get_by_id(usage_id)
                return _to_usage(record) if record else None

    async def delete(self, usage_id: int) -> bool:
        async with store_errors("delete_card_usage"):
            async with UnitOfWork() as uow:
                deleted = await uow.card_usages.delete(usage_id)
        logger.info("card_usage_deleted", id=usage_id, deleted=deleted)
        return deleted

    async def query_range(self, start: datetime, end: datetime) -> list[CardUsage]:
        async with store_errors("query_card_usages"):
            async with UnitOfWork() as uow:
                records = await uow.card_usages.get_in_range(to_storage(start), to_storage(end))
                return [_to_usage(r) for r in records]


class SqlAlertLevelStore(AlertLevelStore):
    """
    Compare-and-raise on the ``alert_levels`` table.

    The raise is one conditional UPDATE. The first write of a period is an
    INSERT guarded by the unique key; losing that race to another writer
    retries the conditional UPDATE once.
    """

    async def get_last_level(self, report_type: ReportType, period_start: datetime) -> ThresholdLevel:
        async with store_errors("get_alert_level"):
            async with UnitOfWork() as uow:
                level = await uow.alert_levels.get_level(report_type.value, to_storage(period_start))
        return ThresholdLevel(level or 0)

    async def set_level_if_greater(
        self, report_type: ReportType, period_start: datetime, level: ThresholdLevel
    ) -> tuple[bool, ThresholdLevel]:
        if level == ThresholdLevel.NONE:
            return False, await self.get_last_level(report_type, period_start)

        key = to_storage(period_start)
        async with store_errors("set_alert_level"):
            try:
                return await self._raise_or_insert(report_type, key, level)
            except IntegrityError:
                logger.info("alert_level_insert_race", report_type=report_type.value, level=int(level))
                return await self._raise_or_insert(report_type, key, level)

    async def _raise_or_insert(
        self, report_type: ReportType, key: datetime, level: ThresholdLevel
    ) -> tuple[bool, ThresholdLevel]:
        async with UnitOfWork() as uow:
            previous = await uow.alert_levels.get_level(report_type.value, key)
            if await uow.alert_levels.raise_level(report_type.value, key, int(level)):
                return True, ThresholdLevel(previous or 0)
            if previous is None:
                await uow.alert_levels.insert_level(report_type.value, key, int(level))
                return True, ThresholdLevel.NONE
            return False, ThresholdLevel(previous)


class SqlReportStore(ReportStore):
    async def save(self, report: Report) -> Report:
        async with store_errors("save_report"):
            async with UnitOfWork() as uow:
                snapshot = await uow.reports.upsert_snapshot(
                    report_type=report.report_type.value,
                    period_start=to_storage(report.period_start),
                    period_end=to_storage(report.period_end),
                    total_amount=report.total_amount,
                    usage_count=report.usage_count,
                    crossed_level=int(report.crossed_level) if report.crossed_level else None,
                )
                return _to_report(snapshot)

    async def get(self, report_type: ReportType, period_start: datetime) -> Report | None:
        async with store_errors("get_report"):
            async with UnitOfWork() as uow:
                snapshot = await uow.reports.get_snapshot(report_type.value, to_storage(period_start))
                return _to_report(snapshot) if snapshot else None
