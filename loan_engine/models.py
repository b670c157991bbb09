"""
Loan Data Model

Immutable value objects shared by every calculator: loan terms, scheduled
payments, amortization schedules and structured validation errors. Entities
are created fresh per calculation call and never mutated afterwards.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, replace
from typing import Optional, Tuple
from enum import Enum

from .rounding import RoundingConfig, DEFAULT_ROUNDING, to_decimal, HUNDRED
from .day_count import (
    PaymentFrequency, DayCountConvention, number_of_payments, periods_per_year,
)
from .exceptions import UnsupportedInterestType


class InterestType(Enum):
    """How interest is charged across the schedule"""
    AMORTIZED = "amortized"          # Level payment, interest on balance per period
    INTEREST_ONLY = "interest-only"  # Interest each period, principal at maturity
    SIMPLE = "simple"                # Interest on the unreduced principal, repaid at maturity

    @classmethod
    def coerce(cls, value) -> 'InterestType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedInterestType(value) from None


@dataclass(frozen=True)
class LoanTerms:
    """
    Loan terms and conditions

    Domain constraints (positive principal, rate within 0-100, positive term,
    balloon below principal) are reported by validation.validate_loan_terms
    rather than raised here, so callers can collect every problem at once.
    """
    principal: Decimal
    annual_interest_rate: Decimal      # Percentage points, e.g. 5 for 5%
    term_months: int
    start_date: date
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    first_payment_date: Optional[date] = None
    interest_type: InterestType = InterestType.AMORTIZED
    day_count_convention: DayCountConvention = DayCountConvention.THIRTY_360
    balloon_payment: Optional[Decimal] = None
    balloon_payment_date: Optional[date] = None
    rounding_config: RoundingConfig = DEFAULT_ROUNDING

    def __post_init__(self):
        # Normalize numeric inputs to Decimal and string enums to members
        if self.principal is not None:
            object.__setattr__(self, 'principal', to_decimal(self.principal))
        if self.annual_interest_rate is not None:
            object.__setattr__(self, 'annual_interest_rate', to_decimal(self.annual_interest_rate))
        if self.balloon_payment is not None:
            object.__setattr__(self, 'balloon_payment', to_decimal(self.balloon_payment))
        # None is left in place so the validator can report REQUIRED_FIELD
        if self.payment_frequency is not None:
            object.__setattr__(self, 'payment_frequency',
                               PaymentFrequency.coerce(self.payment_frequency))
        if self.interest_type is not None:
            object.__setattr__(self, 'interest_type', InterestType.coerce(self.interest_type))
        if self.day_count_convention is not None:
            object.__setattr__(self, 'day_count_convention',
                               DayCountConvention.coerce(self.day_count_convention))
        if self.rounding_config is None:
            object.__setattr__(self, 'rounding_config', DEFAULT_ROUNDING)

    @property
    def number_of_payments(self) -> int:
        """Calculate total number of regular payments"""
        return number_of_payments(self.term_months, self.payment_frequency)

    @property
    def payments_per_year(self) -> int:
        return periods_per_year(self.payment_frequency)

    @property
    def period_rate(self) -> Decimal:
        """Interest rate per payment period as a fraction"""
        return self.annual_interest_rate / (Decimal(self.payments_per_year) * HUNDRED)

    @property
    def has_balloon(self) -> bool:
        return self.balloon_payment is not None and self.balloon_payment > 0

    @property
    def is_interest_only(self) -> bool:
        """Regular payments cover interest only and principal is due at maturity"""
        return self.interest_type in (InterestType.INTEREST_ONLY, InterestType.SIMPLE)

    def with_changes(self, **changes) -> 'LoanTerms':
        """Return a copy with the given fields replaced"""
        return replace(self, **changes)


@dataclass(frozen=True)
class ScheduledPayment:
    """Single entry in an amortization schedule"""
    payment_number: int
    due_date: date
    principal: Decimal
    interest: Decimal
    total_payment: Decimal
    beginning_balance: Decimal
    ending_balance: Decimal
    cumulative_interest: Decimal
    cumulative_principal: Decimal

    def __post_init__(self):
        # Validate that payment equals principal + interest
        if self.principal + self.interest != self.total_payment:
            raise ValueError(f"Payment amount {self.total_payment} does not equal "
                             f"principal {self.principal} + interest {self.interest}")

    @property
    def remaining_balance(self) -> Decimal:
        return self.ending_balance


@dataclass(frozen=True)
class AmortizationSchedule:
    """Complete amortization schedule in payment-number order"""
    payments: Tuple[ScheduledPayment, ...]
    total_interest: Decimal
    total_principal: Decimal
    total_payments: Decimal
    effective_interest_rate: Decimal
    last_payment_date: date
    loan_terms: LoanTerms

    def __post_init__(self):
        object.__setattr__(self, 'payments', tuple(self.payments))

    def __len__(self) -> int:
        return len(self.payments)

    def get_payment(self, payment_number: int) -> Optional[ScheduledPayment]:
        for payment in self.payments:
            if payment.payment_number == payment_number:
                return payment
        return None

    @property
    def final_payment(self) -> Optional[ScheduledPayment]:
        return self.payments[-1] if self.payments else None


@dataclass(frozen=True)
class PaymentCalculationResult:
    """Result of a payment calculation"""
    monthly_payment: Decimal
    total_interest: Decimal
    total_payments: Decimal
    effective_interest_rate: Decimal
    number_of_payments: int


@dataclass(frozen=True)
class InterestCalculationParams:
    """Inputs for a simple interest calculation over a date range"""
    principal: Decimal
    annual_rate: Decimal
    start_date: date
    end_date: date
    day_count_convention: DayCountConvention = DayCountConvention.THIRTY_360
    rounding_config: Optional[RoundingConfig] = None


@dataclass(frozen=True)
class InterestCalculationResult:
    interest_amount: Decimal
    day_count: int
    daily_rate: Decimal


@dataclass(frozen=True)
class PrepaymentParams:
    """Extra payment applied against an existing schedule"""
    amount: Decimal
    date: date
    apply_to_principal: bool = True


@dataclass(frozen=True)
class LoanModification:
    """Contract modification applied to outstanding terms"""
    effective_date: date
    new_rate: Optional[Decimal] = None
    new_term_months: Optional[int] = None
    principal_adjustment: Optional[Decimal] = None
    reason: str = ""


class ValidationErrorCode(Enum):
    """Codes for user-correctable input problems"""
    REQUIRED_FIELD = "REQUIRED_FIELD"
    INVALID_VALUE = "INVALID_VALUE"
    MAX_VALUE_EXCEEDED = "MAX_VALUE_EXCEEDED"
    INVALID_DATE = "INVALID_DATE"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"


@dataclass(frozen=True)
class ValidationError:
    """Structured validation problem, returned as data and never raised"""
    field: str
    message: str
    code: ValidationErrorCode
