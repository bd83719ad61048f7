"""Calendar-month helpers used by the analytics queries."""

from __future__ import annotations

from calendar import monthrange
from datetime import datetime


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping the day to the month length.

    ``shift_months(datetime(2024, 3, 31), -1)`` is 2024-02-29.
    """

    index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def month_start(moment: datetime) -> datetime:
    """First instant of the month containing ``moment``."""

    return datetime(moment.year, moment.month, 1)


def month_bounds(moment: datetime, offset: int = 0) -> tuple[datetime, datetime]:
    """Return ``[start, next_start)`` of the month ``offset`` months from ``moment``."""

    start = month_start(shift_months(month_start(moment), offset))
    return start, shift_months(start, 1)


def month_label(moment: datetime) -> str:
    return moment.strftime("%b %Y")
