"""Report period boundaries in the reference timezone."""

from __future__ import annotations

from datetime import datetime, time, timedelta

from cardspend.core.config import get_settings
from cardspend.core.dates import ensure_aware, to_reference
from cardspend.core.errors import InvalidPeriodError
from cardspend.reports.models import ReportType

# datetime.weekday() numbering
_WEEKDAYS = {"monday": 0, "sunday": 6}


def week_start_weekday() -> int:
    """weekday() value of the first day of a WEEKLY period."""
    return _WEEKDAYS[get_settings().WEEK_STARTS_ON]


def validate_period_start(report_type: ReportType, period_start: datetime) -> datetime:
    """
    Check that ``period_start`` is a period boundary and return it in the
    reference timezone.

    A naive value is read as reference-timezone wall time.

    Raises:
        InvalidPeriodError: If not midnight of a week-start day (WEEKLY) or of
            the 1st of a month (MONTHLY)
    """
    start = to_reference(ensure_aware(period_start))

    if start.time() != time(0, 0):
        raise InvalidPeriodError(
            f"Period start must be local midnight, got {start.isoformat()}",
            {"report_type": report_type.value, "period_start": start.isoformat()},
        )

    if report_type == ReportType.WEEKLY and start.weekday() != week_start_weekday():
        raise InvalidPeriodError(
            f"Weekly period must start on {get_settings().WEEK_STARTS_ON}, "
            f"got {start.strftime('%A')} {start.date().isoformat()}",
            {"report_type": report_type.value, "period_start": start.isoformat()},
        )

    if report_type == ReportType.MONTHLY and start.day != 1:
        raise InvalidPeriodError(
            f"Monthly period must start on the 1st, got {start.date().isoformat()}",
            {"report_type": report_type.value, "period_start": start.isoformat()},
        )

    return start


def period_end(report_type: ReportType, period_start: datetime) -> datetime:
    """
    Exclusive end of the period starting at ``period_start``.

    WEEKLY adds seven calendar days; MONTHLY is the 1st of the next month.
    Both are wall-clock arithmetic in the reference timezone.
    """
    start = to_reference(ensure_aware(period_start))
    tz = start.tzinfo

    if report_type == ReportType.WEEKLY:
        day = start.date() + timedelta(days=7)
    else:
        year, month = (start.year + 1, 1) if start.month == 12 else (start.year, start.month + 1)
        day = start.date().replace(year=year, month=month, day=1)

    return datetime.combine(day, time(0, 0), tzinfo=tz)


def current_period_start(report_type: ReportType, now: datetime) -> datetime:
    """Start of the period containing ``now``."""
    local = to_reference(ensure_aware(now))
    if report_type == ReportType.WEEKLY:
        offset = (local.weekday() - week_start_weekday()) % 7
        day = local.date() - timedelta(days=offset)
    else:
        day = local.date().replace(day=1)
    return datetime.combine(day, time(0, 0), tzinfo=local.tzinfo)
