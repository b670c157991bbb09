"""
Pydantic schemas for exchanging engine values across a boundary

Decimals travel as strings and dates as ISO strings so that no precision is
lost to floating point.
"""

from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from .rounding import RoundingConfig, RoundingMethod
from .day_count import parse_date, format_date
from .models import (
    LoanTerms, ScheduledPayment, AmortizationSchedule, PaymentCalculationResult,
    ValidationError,
)
from .balloon import BalloonDetectionResult


def _optional_str(value) -> Optional[str]:
    return None if value is None else str(value)


class RoundingConfigModel(BaseModel):
    method: str = Field("HALF_UP", description="Rounding method (BANKERS, HALF_UP, ...)")
    decimal_places: int = 2

    def to_rounding_config(self) -> RoundingConfig:
        return RoundingConfig(RoundingMethod.coerce(self.method), self.decimal_places)

    @classmethod
    def from_rounding_config(cls, config: RoundingConfig) -> 'RoundingConfigModel':
        return cls(method=config.method.value, decimal_places=config.decimal_places)


class LoanTermsModel(BaseModel):
    principal: str = Field(..., description="Decimal amount as string")
    annual_interest_rate: str = Field(..., description="Annual rate in percent as string")
    term_months: int
    start_date: str = Field(..., description="ISO date")
    payment_frequency: str = "monthly"
    first_payment_date: Optional[str] = None
    interest_type: str = "amortized"
    day_count_convention: str = "30/360"
    balloon_payment: Optional[str] = None
    balloon_payment_date: Optional[str] = None
    rounding_config: RoundingConfigModel = Field(default_factory=RoundingConfigModel)

    def to_loan_terms(self) -> LoanTerms:
        return LoanTerms(
            principal=Decimal(self.principal),
            annual_interest_rate=Decimal(self.annual_interest_rate),
            term_months=self.term_months,
            start_date=parse_date(self.start_date),
            payment_frequency=self.payment_frequency,
            first_payment_date=parse_date(self.first_payment_date) if self.first_payment_date else None,
            interest_type=self.interest_type,
            day_count_convention=self.day_count_convention,
            balloon_payment=Decimal(self.balloon_payment) if self.balloon_payment else None,
            balloon_payment_date=(parse_date(self.balloon_payment_date)
                                  if self.balloon_payment_date else None),
            rounding_config=self.rounding_config.to_rounding_config()
        )

    @classmethod
    def from_loan_terms(cls, terms: LoanTerms) -> 'LoanTermsModel':
        return cls(
            principal=str(terms.principal),
            annual_interest_rate=str(terms.annual_interest_rate),
            term_months=terms.term_months,
            start_date=format_date(terms.start_date),
            payment_frequency=terms.payment_frequency.value,
            first_payment_date=format_date(terms.first_payment_date) if terms.first_payment_date else None,
            interest_type=terms.interest_type.value,
            day_count_convention=terms.day_count_convention.value,
            balloon_payment=_optional_str(terms.balloon_payment),
            balloon_payment_date=(format_date(terms.balloon_payment_date)
                                  if terms.balloon_payment_date else None),
            rounding_config=RoundingConfigModel.from_rounding_config(terms.rounding_config)
        )


class ScheduledPaymentModel(BaseModel):
    payment_number: int
    due_date: str
    principal: str
    interest: str
    total_payment: str
    beginning_balance: str
    ending_balance: str
    cumulative_interest: str
    cumulative_principal: str

    @classmethod
    def from_payment(cls, payment: ScheduledPayment) -> 'ScheduledPaymentModel':
        return cls(
            payment_number=payment.payment_number,
            due_date=format_date(payment.due_date),
            principal=str(payment.principal),
            interest=str(payment.interest),
            total_payment=str(payment.total_payment),
            beginning_balance=str(payment.beginning_balance),
            ending_balance=str(payment.ending_balance),
            cumulative_interest=str(payment.cumulative_interest),
            cumulative_principal=str(payment.cumulative_principal)
        )

    def to_payment(self) -> ScheduledPayment:
        return ScheduledPayment(
            payment_number=self.payment_number,
            due_date=parse_date(self.due_date),
            principal=Decimal(self.principal),
            interest=Decimal(self.interest),
            total_payment=Decimal(self.total_payment),
            beginning_balance=Decimal(self.beginning_balance),
            ending_balance=Decimal(self.ending_balance),
            cumulative_interest=Decimal(self.cumulative_interest),
            cumulative_principal=Decimal(self.cumulative_principal)
        )


class AmortizationScheduleModel(BaseModel):
    payments: List[ScheduledPaymentModel]
    total_interest: str
    total_principal: str
    total_payments: str
    effective_interest_rate: str
    last_payment_date: str
    loan_terms: LoanTermsModel

    @classmethod
    def from_schedule(cls, schedule: AmortizationSchedule) -> 'AmortizationScheduleModel':
        return cls(
            payments=[ScheduledPaymentModel.from_payment(p) for p in schedule.payments],
            total_interest=str(schedule.total_interest),
            total_principal=str(schedule.total_principal),
            total_payments=str(schedule.total_payments),
            effective_interest_rate=str(schedule.effective_interest_rate),
            last_payment_date=format_date(schedule.last_payment_date),
            loan_terms=LoanTermsModel.from_loan_terms(schedule.loan_terms)
        )

    def to_schedule(self) -> AmortizationSchedule:
        return AmortizationSchedule(
            payments=tuple(p.to_payment() for p in self.payments),
            total_interest=Decimal(self.total_interest),
            total_principal=Decimal(self.total_principal),
            total_payments=Decimal(self.total_payments),
            effective_interest_rate=Decimal(self.effective_interest_rate),
            last_payment_date=parse_date(self.last_payment_date),
            loan_terms=self.loan_terms.to_loan_terms()
        )


class PaymentCalculationModel(BaseModel):
    monthly_payment: str
    total_interest: str
    total_payments: str
    effective_interest_rate: str
    number_of_payments: int

    @classmethod
    def from_result(cls, result: PaymentCalculationResult) -> 'PaymentCalculationModel':
        return cls(
            monthly_payment=str(result.monthly_payment),
            total_interest=str(result.total_interest),
            total_payments=str(result.total_payments),
            effective_interest_rate=str(result.effective_interest_rate),
            number_of_payments=result.number_of_payments
        )


class ValidationErrorModel(BaseModel):
    field: str
    message: str
    code: str

    @classmethod
    def from_error(cls, error: ValidationError) -> 'ValidationErrorModel':
        return cls(field=error.field, message=error.message, code=error.code.value)


class BalloonDetectionModel(BaseModel):
    detected: bool
    payment_number: Optional[int] = None
    due_date: Optional[str] = None
    amount: Optional[str] = None
    regular_payment_amount: Optional[str] = None
    excess_percentage: Optional[str] = None
    excess_absolute: Optional[str] = None

    @classmethod
    def from_result(cls, result: BalloonDetectionResult) -> 'BalloonDetectionModel':
        model = cls(detected=result.detected)
        if result.payment is not None:
            model.payment_number = result.payment.payment_number
            model.due_date = format_date(result.payment.due_date)
            model.amount = str(result.payment.amount)
            model.regular_payment_amount = str(result.payment.regular_payment_amount)
        if result.exceeds_regular_by is not None:
            model.excess_percentage = str(result.exceeds_regular_by.percentage)
            model.excess_absolute = str(result.exceeds_regular_by.absolute)
        return model
