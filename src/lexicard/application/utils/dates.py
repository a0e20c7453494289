"""Date helpers shared by scheduling and statistics.

All timestamps are normalized to UTC. Naive datetimes are assumed to be UTC.
"""

import calendar
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def calendar_day(value: datetime) -> date:
    """Date portion of the UTC timestamp."""
    return ensure_utc(value).date()


def month_index(value: datetime | date) -> int:
    """Absolute month number, so consecutive months differ by one across years."""
    return value.year * 12 + (value.month - 1)


def shift_months(value: datetime, months: int) -> datetime:
    """
    Move a timestamp by a number of calendar months.

    The day is clamped to the length of the target month (Mar 31 - 1 month = Feb 28/29).
    """
    idx = month_index(value) + months
    year, month = divmod(idx, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def start_of_month(value: datetime) -> datetime:
    return ensure_utc(value).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def round_half_up(value: float, digits: int = 0) -> int | float:
    """Round with halves away from zero instead of Python's banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)
