"""
Calendar & Day Count Module

Payment date stepping, payment counting and day count conventions
(30/360, actual/360, actual/365, actual/actual) used for interest accrual.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union
from decimal import Decimal
import calendar
import math

from .exceptions import UnsupportedFrequency, UnsupportedConvention


class PaymentFrequency(Enum):
    """Payment frequency options"""
    MONTHLY = "monthly"              # 12 payments per year
    SEMI_MONTHLY = "semi-monthly"    # 24 payments per year (15th and 1st)
    BI_WEEKLY = "bi-weekly"          # 26 payments per year
    WEEKLY = "weekly"                # 52 payments per year
    QUARTERLY = "quarterly"          # 4 payments per year
    SEMI_ANNUALLY = "semi-annually"  # 2 payments per year
    ANNUALLY = "annually"            # 1 payment per year

    @classmethod
    def coerce(cls, value) -> 'PaymentFrequency':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedFrequency(value) from None


class DayCountConvention(Enum):
    """Methods for counting days in an accrual period"""
    THIRTY_360 = "30/360"            # Every month has 30 days
    ACTUAL_360 = "actual/360"        # Actual days / 360 (common for loans)
    ACTUAL_365 = "actual/365"        # Actual days / 365
    ACTUAL_ACTUAL = "actual/actual"  # Actual days / 365 or 366

    @classmethod
    def coerce(cls, value) -> 'DayCountConvention':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedConvention(value) from None


PAYMENTS_PER_YEAR = {
    PaymentFrequency.MONTHLY: 12,
    PaymentFrequency.SEMI_MONTHLY: 24,
    PaymentFrequency.BI_WEEKLY: 26,
    PaymentFrequency.WEEKLY: 52,
    PaymentFrequency.QUARTERLY: 4,
    PaymentFrequency.SEMI_ANNUALLY: 2,
    PaymentFrequency.ANNUALLY: 1,
}

# Months stepped per payment for the month-based frequencies
_MONTH_STEPS = {
    PaymentFrequency.MONTHLY: 1,
    PaymentFrequency.QUARTERLY: 3,
    PaymentFrequency.SEMI_ANNUALLY: 6,
    PaymentFrequency.ANNUALLY: 12,
}

_DAY_STEPS = {
    PaymentFrequency.BI_WEEKLY: 14,
    PaymentFrequency.WEEKLY: 7,
}

DAYS_PER_MONTH = Decimal('365.25') / 12


def periods_per_year(frequency: PaymentFrequency) -> int:
    """Get number of payments per year"""
    return PAYMENTS_PER_YEAR[PaymentFrequency.coerce(frequency)]


def is_leap_year(year: int) -> bool:
    return calendar.isleap(year)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def is_end_of_month(dt: date) -> bool:
    return dt.day == days_in_month(dt.year, dt.month)


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping the day to the target month's length"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, days_in_month(year, month))
    return date(year, month, day)


def add_months_end_of_month(start_date: date, months: int) -> date:
    """
    Add months to a date, keeping month-end dates at month-end

    Jan 31 + 1 month = Feb 28/29, and Feb 28 (non-leap) + 1 month = Mar 31.
    """
    result = add_months(start_date, months)
    if is_end_of_month(start_date):
        return result.replace(day=days_in_month(result.year, result.month))
    return result


def next_payment_date(current_date: date, frequency: PaymentFrequency) -> date:
    """Calculate next payment date based on frequency"""
    frequency = PaymentFrequency.coerce(frequency)
    if frequency in _MONTH_STEPS:
        return add_months_end_of_month(current_date, _MONTH_STEPS[frequency])
    if frequency in _DAY_STEPS:
        return current_date + timedelta(days=_DAY_STEPS[frequency])
    if frequency is PaymentFrequency.SEMI_MONTHLY:
        if current_date.day < 15:
            return current_date.replace(day=15)
        return add_months(current_date.replace(day=1), 1)
    raise UnsupportedFrequency(frequency)


def number_of_payments(term_months: int, frequency: PaymentFrequency) -> int:
    """Calculate the number of payments for a term in months"""
    frequency = PaymentFrequency.coerce(frequency)
    if frequency is PaymentFrequency.MONTHLY:
        return term_months
    if frequency is PaymentFrequency.SEMI_MONTHLY:
        return term_months * 2
    if frequency in _DAY_STEPS:
        return math.floor(Decimal(term_months) * DAYS_PER_MONTH / _DAY_STEPS[frequency])
    if frequency in _MONTH_STEPS:
        return math.ceil(Decimal(term_months) / _MONTH_STEPS[frequency])
    raise UnsupportedFrequency(frequency)


def day_count(start_date: date, end_date: date, convention: DayCountConvention) -> int:
    """Number of days between two dates under a day count convention"""
    convention = DayCountConvention.coerce(convention)
    if convention is DayCountConvention.THIRTY_360:
        return _thirty_360_day_count(start_date, end_date)
    return (end_date - start_date).days


def _thirty_360_day_count(start_date: date, end_date: date) -> int:
    d1 = start_date.day
    d2 = end_date.day

    if d1 == 31:
        d1 = 30
    # End date only clamps when the start date already sits on day 30/31
    if d2 == 31 and d1 >= 30:
        d2 = 30

    return ((end_date.year - start_date.year) * 360
            + (end_date.month - start_date.month) * 30
            + (d2 - d1))


def day_count_denominator(convention: DayCountConvention, year: Optional[int] = None) -> int:
    """Days in the accrual year for a convention"""
    convention = DayCountConvention.coerce(convention)
    if convention in (DayCountConvention.THIRTY_360, DayCountConvention.ACTUAL_360):
        return 360
    if convention is DayCountConvention.ACTUAL_365:
        return 365
    if year is not None and is_leap_year(year):
        return 366
    return 365


def parse_date(value: Union[str, date, datetime], fmt: Optional[str] = None) -> date:
    """
    Parse an ISO (YYYY-MM-DD) or custom-format date string

    Raises:
        ValueError: If the string is not a valid date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if fmt:
        return datetime.strptime(value, fmt).date()
    return date.fromisoformat(value.strip()[:10])


def format_date(value: date, fmt: str = "%Y-%m-%d") -> str:
    return value.strftime(fmt)
