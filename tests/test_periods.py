"""Tests for report period boundaries."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from cardspend.core.errors import InvalidPeriodError
from cardspend.reports.models import ReportType
from cardspend.reports.periods import current_period_start, period_end, validate_period_start

TOKYO = ZoneInfo("Asia/Tokyo")


class TestValidatePeriodStart:
    def test_weekly_sunday_midnight(self):
        start = validate_period_start(ReportType.WEEKLY, datetime(2025, 1, 19, tzinfo=TOKYO))
        assert start == datetime(2025, 1, 19, tzinfo=TOKYO)
        assert start.utcoffset().total_seconds() == 9 * 3600

    def test_naive_value_is_reference_time(self):
        start = validate_period_start(ReportType.WEEKLY, datetime(2025, 1, 19))
        assert start == datetime(2025, 1, 19, tzinfo=TOKYO)

    def test_utc_equivalent_instant(self):
        # 2025-01-19 00:00 in Tokyo
        start = validate_period_start(
            ReportType.WEEKLY, datetime(2025, 1, 18, 15, 0, tzinfo=timezone.utc)
        )
        assert start == datetime(2025, 1, 19, tzinfo=TOKYO)
        assert start.day == 19

    def test_weekly_wrong_weekday(self):
        with pytest.raises(InvalidPeriodError) as exc_info:
            validate_period_start(ReportType.WEEKLY, datetime(2025, 1, 20, tzinfo=TOKYO))
        assert exc_info.value.details["report_type"] == "WEEKLY"

    def test_not_midnight(self):
        with pytest.raises(InvalidPeriodError):
            validate_period_start(ReportType.WEEKLY, datetime(2025, 1, 19, 0, 30, tzinfo=TOKYO))
        with pytest.raises(InvalidPeriodError):
            validate_period_start(ReportType.MONTHLY, datetime(2025, 2, 1, 9, tzinfo=TOKYO))

    def test_utc_midnight_is_not_local_midnight(self):
        with pytest.raises(InvalidPeriodError):
            validate_period_start(ReportType.MONTHLY, datetime(2025, 2, 1, tzinfo=timezone.utc))

    def test_monthly_first_of_month(self):
        start = validate_period_start(ReportType.MONTHLY, datetime(2025, 2, 1, tzinfo=TOKYO))
        assert start == datetime(2025, 2, 1, tzinfo=TOKYO)

    def test_monthly_not_first(self):
        with pytest.raises(InvalidPeriodError):
            validate_period_start(ReportType.MONTHLY, datetime(2025, 2, 2, tzinfo=TOKYO))

    def test_monday_week_start(self, monkeypatch):
        monkeypatch.setattr("cardspend.reports.periods.week_start_weekday", lambda: 0)
        start = validate_period_start(ReportType.WEEKLY, datetime(2025, 1, 20, tzinfo=TOKYO))
        assert start.weekday() == 0
        with pytest.raises(InvalidPeriodError):
            validate_period_start(ReportType.WEEKLY, datetime(2025, 1, 19, tzinfo=TOKYO))


class TestPeriodEnd:
    def test_weekly_end(self):
        end = period_end(ReportType.WEEKLY, datetime(2025, 1, 19, tzinfo=TOKYO))
        assert end == datetime(2025, 1, 26, tzinfo=TOKYO)

    def test_weekly_end_crosses_month(self):
        end = period_end(ReportType.WEEKLY, datetime(2025, 1, 26, tzinfo=TOKYO))
        assert end == datetime(2025, 2, 2, tzinfo=TOKYO)

    def test_monthly_end(self):
        assert period_end(ReportType.MONTHLY, datetime(2025, 2, 1, tzinfo=TOKYO)) == datetime(
            2025, 3, 1, tzinfo=TOKYO
        )

    def test_monthly_end_december(self):
        end = period_end(ReportType.MONTHLY, datetime(2025, 12, 1, tzinfo=TOKYO))
        assert end == datetime(2026, 1, 1, tzinfo=TOKYO)


class TestCurrentPeriodStart:
    def test_weekly(self):
        # Wednesday afternoon
        now = datetime(2025, 1, 22, 15, 45, tzinfo=TOKYO)
        assert current_period_start(ReportType.WEEKLY, now) == datetime(2025, 1, 19, tzinfo=TOKYO)

    def test_weekly_on_start_day(self):
        now = datetime(2025, 1, 19, 0, 0, tzinfo=TOKYO)
        assert current_period_start(ReportType.WEEKLY, now) == datetime(2025, 1, 19, tzinfo=TOKYO)

    def test_monthly_from_utc(self):
        # 2025-01-31 16:00 UTC is already February 1st in Tokyo
        now = datetime(2025, 1, 31, 16, 0, tzinfo=timezone.utc)
        assert current_period_start(ReportType.MONTHLY, now) == datetime(2025, 2, 1, tzinfo=TOKYO)

    def test_result_is_valid_period_start(self):
        now = datetime(2025, 5, 10, 15, 30, tzinfo=TOKYO)
        for report_type in ReportType:
            start = current_period_start(report_type, now)
            assert validate_period_start(report_type, start) == start
