"""
Calendar helpers for schedule periods.

All schedule arithmetic works on ``datetime.date``; anything carrying a
time-of-day is stripped on the way in.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Tuple, Union
import calendar
import math

from .enums import Period

DateLike = Union[date, datetime, str]

FIXED_DAYS_PER_MONTH = Decimal('365') / Decimal('12')


def to_date(value: DateLike) -> date:
    """Normalize a date, datetime or ISO string to a calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Cannot interpret {value!r} as a date")


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, handling month-end edge cases"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def advance_period(start_date: date, period: Period, count: int = 1) -> date:
    """Advance a date by a number of schedule periods"""
    if period == Period.MONTHLY:
        return add_months(start_date, count)
    return start_date + timedelta(weeks=count)


def period_boundaries(start_date: date, period: Period, installment_number: int) -> Tuple[date, date]:
    """[start, end) of a 1-based installment anchored on the loan start date"""
    period_start = advance_period(start_date, period, installment_number - 1)
    period_end = advance_period(start_date, period, installment_number)
    return period_start, period_end


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def first_of_next_month(value: date) -> date:
    return add_months(first_of_month(value), 1)


def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative if end is earlier)"""
    return (end - start).days


def periods_to_cover_days(days: int, period: Period,
                          average_days_per_month: Decimal = Decimal('30.44')) -> int:
    """Number of periods needed to cover a span of days, rounded up"""
    if period == Period.MONTHLY:
        return math.ceil(Decimal(days) / average_days_per_month)
    return math.ceil(Decimal(days) / Decimal('7'))


def periods_per_year(period: Period) -> int:
    return 12 if period == Period.MONTHLY else 52
