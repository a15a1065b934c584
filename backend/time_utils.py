import os
from datetime import datetime
from typing import List, Tuple
from zoneinfo import ZoneInfo


def _timezone() -> ZoneInfo:
    name = os.environ.get("APP_TIMEZONE", "UTC")
    return ZoneInfo(name)


def now_tz() -> datetime:
    return datetime.now(_timezone())


def ensure_timezone(dt: datetime) -> datetime:
    tz = _timezone()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def trailing_months(count: int, now: datetime = None) -> List[Tuple[int, int]]:
    """(year, month) pairs for the current month and the ``count - 1`` before it, oldest first."""
    current = ensure_timezone(now) if now else now_tz()
    year, month = current.year, current.month
    months = []
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    return months


def month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=_timezone())
