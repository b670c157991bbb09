"""
Decimal & Rounding Module

Arbitrary-precision Decimal helpers plus the configurable rounding discipline
applied to every monetary intermediate result. NEVER uses float for monetary
values, and never relies on an ambient rounding mode: callers always pass a
RoundingConfig explicitly.
"""

from decimal import (
    Decimal, InvalidOperation,
    ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_HALF_DOWN, ROUND_CEILING, ROUND_FLOOR,
)
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import re

from .exceptions import UnsupportedRoundingMethod


DecimalLike = Union[Decimal, int, float, str]

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')


class RoundingMethod(Enum):
    """Rounding methods for financial calculations"""
    BANKERS = "BANKERS"          # Round half to even
    HALF_UP = "HALF_UP"          # Ties toward +infinity
    HALF_DOWN = "HALF_DOWN"      # Ties toward -infinity
    UP = "UP"                    # Ceiling
    DOWN = "DOWN"                # Floor
    HALF_AWAY = "HALF_AWAY"      # Ties away from zero
    HALF_TOWARD = "HALF_TOWARD"  # Ties toward zero

    @classmethod
    def coerce(cls, value) -> 'RoundingMethod':
        """Return the enum member for a member or its string value"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise UnsupportedRoundingMethod(value) from None


@dataclass(frozen=True)
class RoundingConfig:
    """Rounding method plus the number of fractional digits to keep"""
    method: RoundingMethod = RoundingMethod.HALF_UP
    decimal_places: int = 2

    def __post_init__(self):
        object.__setattr__(self, 'method', RoundingMethod.coerce(self.method))
        if self.decimal_places < 0:
            raise ValueError("decimal_places cannot be negative")

    @property
    def unit(self) -> Decimal:
        """Smallest representable amount, e.g. 0.01 for two places"""
        return ONE.scaleb(-self.decimal_places)


DEFAULT_ROUNDING = RoundingConfig()


def to_decimal(value: DecimalLike) -> Decimal:
    """
    Convert a number to Decimal without binary floating point artifacts

    Floats go through str() so that 0.1 becomes Decimal('0.1').
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a numeric amount")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to Decimal") from None
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def _rounding_mode(method: RoundingMethod, value: Decimal) -> str:
    if method is RoundingMethod.BANKERS:
        return ROUND_HALF_EVEN
    if method is RoundingMethod.HALF_UP:
        # decimal's ROUND_HALF_UP is away from zero; ties go to +infinity here
        return ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    if method is RoundingMethod.HALF_DOWN:
        return ROUND_HALF_DOWN if value >= 0 else ROUND_HALF_UP
    if method is RoundingMethod.UP:
        return ROUND_CEILING
    if method is RoundingMethod.DOWN:
        return ROUND_FLOOR
    if method is RoundingMethod.HALF_AWAY:
        return ROUND_HALF_UP
    if method is RoundingMethod.HALF_TOWARD:
        return ROUND_HALF_DOWN
    raise UnsupportedRoundingMethod(method)


def round_value(value: DecimalLike, config: RoundingConfig) -> Decimal:
    """
    Round a value to exactly config.decimal_places fractional digits

    Args:
        value: Amount to round
        config: Rounding method and precision

    Returns:
        Rounded Decimal
    """
    value = to_decimal(value)
    mode = _rounding_mode(config.method, value)
    return value.quantize(config.unit, rounding=mode)


def round_money(value: DecimalLike, config: Optional[RoundingConfig] = None) -> Decimal:
    """
    Round monetary value immediately after calculation

    This is the primary function to use for all monetary calculations.
    Without a config, HALF_UP to two decimal places is applied.
    """
    return round_value(value, config or DEFAULT_ROUNDING)


def round_places(value: DecimalLike, decimal_places: int = 2) -> Decimal:
    """Round half-up to a fixed number of places (rates and ratios)"""
    return round_value(value, RoundingConfig(RoundingMethod.HALF_UP, decimal_places))


def safe_divide(numerator: DecimalLike, denominator: DecimalLike,
                default: DecimalLike = ZERO) -> Decimal:
    """Divide, returning default instead of failing when denominator is zero"""
    denominator = to_decimal(denominator)
    if denominator == 0:
        return to_decimal(default)
    return to_decimal(numerator) / denominator


def percentage_money(value: Decimal, percent: Decimal,
                     config: Optional[RoundingConfig] = None) -> Decimal:
    """Calculate percent of value and round immediately"""
    return round_money(to_decimal(value) * to_decimal(percent) / HUNDRED, config)


def annual_rate_to_period_rate(annual_rate: Decimal, periods_per_year: int) -> Decimal:
    """Annual rate (any unit) divided evenly across periods"""
    return safe_divide(annual_rate, Decimal(periods_per_year))


def period_rate_to_annual_rate(period_rate: Decimal, periods_per_year: int) -> Decimal:
    return to_decimal(period_rate) * periods_per_year


def compound_interest_factor(rate: Decimal, periods) -> Decimal:
    """(1 + rate) ** periods"""
    return (ONE + to_decimal(rate)) ** to_decimal(periods)


def is_zero(value: Decimal, epsilon: Decimal = Decimal('0.000001')) -> bool:
    """Check if a value is zero within epsilon"""
    return abs(to_decimal(value)) < epsilon


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number, possibly with currency
            symbols and thousands separators

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Remove currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - assume comma is thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:  # Likely decimal separator
            clean_value = clean_value.replace(',', '.')
        else:  # Likely thousands separator
            clean_value = clean_value.replace(',', '')
    else:
        clean_value = clean_value.replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal") from None


def format_currency(value: DecimalLike, currency_symbol: str = '$',
                    decimal_places: int = 2) -> str:
    """Format for display, e.g. $1,234.57"""
    rounded = round_places(value, decimal_places)
    sign = '-' if rounded < 0 else ''
    return f"{sign}{currency_symbol}{abs(rounded):,.{decimal_places}f}"


def format_percentage(value: DecimalLike, decimal_places: int = 2) -> str:
    rounded = round_places(value, decimal_places)
    return f"{rounded:.{decimal_places}f}%"
