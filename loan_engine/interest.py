"""
Interest Calculator Module

Simple, compound and daily interest accrual with proper day counting.
Used standalone and by the schedule generator for irregular periods. Every
monetary result passes through the rounding discipline before it is returned.
"""

from decimal import Decimal
from datetime import date
from typing import Optional

from .rounding import (
    RoundingConfig, DecimalLike, round_money, round_places, safe_divide, to_decimal,
    ONE, HUNDRED,
)
from .day_count import DayCountConvention, day_count, day_count_denominator
from .models import InterestCalculationParams, InterestCalculationResult


RATE_DECIMAL_PLACES = 6


def daily_rate_for(annual_rate: Decimal, convention: DayCountConvention,
                   year: Optional[int] = None) -> Decimal:
    """Fractional daily rate for an annual percentage rate"""
    year_days = day_count_denominator(convention, year)
    return safe_divide(to_decimal(annual_rate), Decimal(year_days) * HUNDRED)


def calculate_simple_interest(params: InterestCalculationParams) -> InterestCalculationResult:
    """
    Calculate simple interest for a date range: principal x daily rate x days

    The accrual year (for actual/actual) is the year of the start date.
    """
    days = day_count(params.start_date, params.end_date, params.day_count_convention)
    daily_rate = daily_rate_for(
        params.annual_rate, params.day_count_convention, params.start_date.year
    )
    interest_amount = to_decimal(params.principal) * daily_rate * days

    return InterestCalculationResult(
        interest_amount=round_money(interest_amount, params.rounding_config),
        day_count=days,
        daily_rate=daily_rate
    )


def calculate_compound_interest(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    periods,
    compounding_frequency: int = 12,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """
    Calculate compound interest earned over a number of compounding periods

    interest = P * (1 + rate / frequency) ^ periods - P
    """
    principal = to_decimal(principal)
    period_rate = safe_divide(to_decimal(annual_rate), Decimal(compounding_frequency) * HUNDRED)
    future_value = principal * (ONE + period_rate) ** to_decimal(periods)
    return round_money(future_value - principal, rounding_config)


def calculate_compound_interest_for_years(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    years: DecimalLike,
    compounding_frequency: int = 12,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """Compound interest where periods = years x compounding frequency"""
    periods = to_decimal(years) * compounding_frequency
    return calculate_compound_interest(
        principal, annual_rate, periods, compounding_frequency, rounding_config
    )


def calculate_daily_interest_accrual(
    outstanding_balance: DecimalLike,
    annual_rate: DecimalLike,
    day_count_convention: DayCountConvention,
    on_date: date,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """Interest accruing on a balance for one day"""
    daily_rate = daily_rate_for(annual_rate, day_count_convention, on_date.year)
    return round_money(to_decimal(outstanding_balance) * daily_rate, rounding_config)


def calculate_irregular_period_interest(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    start_date: date,
    end_date: date,
    day_count_convention: DayCountConvention,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """Interest for an irregular (stub) period using actual elapsed days"""
    result = calculate_simple_interest(InterestCalculationParams(
        principal=to_decimal(principal),
        annual_rate=to_decimal(annual_rate),
        start_date=start_date,
        end_date=end_date,
        day_count_convention=day_count_convention,
        rounding_config=rounding_config
    ))
    return result.interest_amount


def calculate_accrued_interest(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    start_date: date,
    end_date: date,
    day_count_convention: DayCountConvention,
    compounding_frequency: Optional[int] = None,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """
    Calculate accrued interest between two dates

    Without a compounding frequency this is simple interest
    (days x daily rate x principal). With one, the elapsed days are converted
    into (possibly fractional) compounding periods.
    """
    if not compounding_frequency:
        return calculate_irregular_period_interest(
            principal, annual_rate, start_date, end_date,
            day_count_convention, rounding_config
        )

    days = day_count(start_date, end_date, day_count_convention)
    year_days = day_count_denominator(day_count_convention, start_date.year)
    periods = safe_divide(Decimal(days * compounding_frequency), Decimal(year_days))
    return calculate_compound_interest(
        principal, annual_rate, periods, compounding_frequency, rounding_config
    )


def calculate_effective_interest_rate(nominal_rate: DecimalLike,
                                      compounding_frequency: int) -> Decimal:
    """Effective annual rate (percent) = ((1 + nominal / n) ^ n - 1) x 100"""
    periodic_rate = safe_divide(to_decimal(nominal_rate), Decimal(compounding_frequency) * HUNDRED)
    effective = ((ONE + periodic_rate) ** compounding_frequency - ONE) * HUNDRED
    return round_places(effective, RATE_DECIMAL_PLACES)


def calculate_nominal_interest_rate(effective_rate: DecimalLike,
                                    compounding_frequency: int) -> Decimal:
    """Nominal annual rate (percent) = n x ((1 + effective) ^ (1 / n) - 1) x 100"""
    n = Decimal(compounding_frequency)
    effective_decimal = to_decimal(effective_rate) / HUNDRED
    nominal = n * ((ONE + effective_decimal) ** safe_divide(ONE, n) - ONE) * HUNDRED
    return round_places(nominal, RATE_DECIMAL_PLACES)
