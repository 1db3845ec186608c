"""Date manipulation utilities"""

import calendar
from datetime import date, datetime
from typing import Tuple, TypeVar

from dateutil.relativedelta import relativedelta

D = TypeVar("D", date, datetime)


def add_months(value: D, months: int) -> D:
    """Shift a date by whole months, clamping the day to the target month's end"""
    return value + relativedelta(months=months)


def shift_year_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Advance a (year, month) pair by `months` (may be negative)"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, using the month's last day when `day` does not exist in it"""
    return date(year, month, min(day, days_in_month(year, month)))


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month (inclusive)"""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def utc_today() -> date:
    return datetime.utcnow().date()
