"""Timezone helpers for the fixed reference timezone."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from cardspend.core.config import get_settings


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def reference_timezone() -> ZoneInfo:
    """Zone used for period boundaries and offset-less email timestamps."""
    return _zone(get_settings().REFERENCE_TIMEZONE)


def ensure_aware(value: datetime) -> datetime:
    """Attach the reference timezone to a naive datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=reference_timezone())
    return value


def to_reference(value: datetime) -> datetime:
    """Express a datetime in the reference timezone."""
    return ensure_aware(value).astimezone(reference_timezone())


def to_storage(value: datetime) -> datetime:
    """Convert to UTC for storage; naive values are read as reference time."""
    return ensure_aware(value).astimezone(timezone.utc)


def from_storage(value: datetime) -> datetime:
    """Re-attach UTC to values read back from drivers that drop tzinfo (SQLite)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(reference_timezone())
