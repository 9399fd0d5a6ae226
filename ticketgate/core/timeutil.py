"""
Time helpers — normalize date-only and date-time values to comparable instants.

All instants handled by the check-in core are timezone-aware. Naive values are
interpreted in the configured business timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ticketgate.core.exceptions import InvalidSlotTime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_zone(name: str | None) -> tzinfo:
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def as_aware(value: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Attach `tz` to a naive datetime; leave aware ones untouched."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def start_of_day(day: date, tz: tzinfo = timezone.utc) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds(day: date, tz: tzinfo = timezone.utc) -> tuple[datetime, datetime]:
    """Half-open [00:00, next 00:00) interval of a calendar day in `tz`."""
    start = start_of_day(day, tz)
    return start, start_of_day(day + timedelta(days=1), tz)


def normalize_slot_time(value: date | datetime | str | None, tz: tzinfo = timezone.utc) -> datetime | None:
    """
    Convert a submitted slot value to an aware instant.

    A date without a time component becomes midnight of that day in `tz`.
    Empty values mean the schema carries no date field.
    """
    if value is None:
        return None

    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            if "T" not in raw and " " not in raw:
                return start_of_day(date.fromisoformat(raw), tz)
            return as_aware(datetime.fromisoformat(raw), tz)
        except ValueError as e:
            raise InvalidSlotTime(f"Unrecognized slot time: {value!r}") from e

    if isinstance(value, datetime):
        return as_aware(value, tz)

    if isinstance(value, date):
        return start_of_day(value, tz)

    raise InvalidSlotTime(f"Unsupported slot time type: {type(value).__name__}")
