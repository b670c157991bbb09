"""
Loan Engine Facade

Single entry point over the calculators. LoanEngine is stateless: every
method is a static function of its arguments, so one engine can serve any
number of concurrent callers. Module-level aliases expose the most common
operations as plain functions.
"""

from decimal import Decimal
from datetime import date, datetime
from typing import List, Optional, Tuple, Union

from .rounding import (
    RoundingConfig, RoundingMethod, DecimalLike, to_decimal, round_money,
    format_currency, format_percentage,
)
from .day_count import (
    PaymentFrequency, DayCountConvention, next_payment_date, parse_date, format_date,
)
from .models import (
    LoanTerms, InterestType, ScheduledPayment, AmortizationSchedule,
    PaymentCalculationResult, InterestCalculationParams, InterestCalculationResult,
    PrepaymentParams, LoanModification, ValidationError,
)
from .config import get_config
from .payments import calculate_loan_payment, calculate_apr as _calculate_apr
from .amortization import (
    generate_amortization_schedule, generate_partial_schedule, recalculate_with_prepayment,
)
from .interest import (
    calculate_simple_interest, calculate_compound_interest_for_years,
    calculate_daily_interest_accrual, calculate_accrued_interest,
    calculate_effective_interest_rate, calculate_nominal_interest_rate,
)
from .balloon import BalloonDetectionConfig, BalloonDetectionResult
from .balloon import detect_balloon_payments as _detect_balloon_payments
from .balloon_strategies import (
    BalloonStrategyConfig, BalloonStrategyResult, apply_balloon_strategy,
    apply_split_payment_strategy, apply_extend_contract_strategy, apply_hybrid_strategy,
)
from .validation import validate_loan_terms, is_valid_loan_terms


DateLike = Union[str, date, datetime]

DAYS_PER_YEAR_PERCENT = Decimal('36500')


def _to_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None:
        return None
    return parse_date(value)


class LoanEngine:
    """
    Stateless loan calculation engine

    Provides payment calculations, amortization schedules, interest
    calculations, prepayments, modifications, APR and balloon handling.
    """

    @staticmethod
    def create_loan(
        principal: DecimalLike,
        annual_interest_rate: DecimalLike,
        term_months: int,
        start_date: DateLike,
        payment_frequency: Optional[Union[PaymentFrequency, str]] = None,
        interest_type: Optional[Union[InterestType, str]] = None,
        day_count_convention: Optional[Union[DayCountConvention, str]] = None,
        first_payment_date: Optional[DateLike] = None,
        balloon_payment: Optional[DecimalLike] = None,
        balloon_payment_date: Optional[DateLike] = None,
        rounding_config: Optional[RoundingConfig] = None
    ) -> LoanTerms:
        """
        Create loan terms, filling unspecified options from configuration

        Dates may be given as date objects or ISO strings.
        """
        settings = get_config()
        if rounding_config is None:
            rounding_config = RoundingConfig(
                method=RoundingMethod.coerce(settings.default_rounding_method),
                decimal_places=settings.default_decimal_places
            )

        return LoanTerms(
            principal=to_decimal(principal),
            annual_interest_rate=to_decimal(annual_interest_rate),
            term_months=term_months,
            start_date=parse_date(start_date),
            payment_frequency=payment_frequency or settings.default_payment_frequency,
            first_payment_date=_to_date(first_payment_date),
            interest_type=interest_type or settings.default_interest_type,
            day_count_convention=day_count_convention or settings.default_day_count_convention,
            balloon_payment=balloon_payment,
            balloon_payment_date=_to_date(balloon_payment_date),
            rounding_config=rounding_config
        )

    @staticmethod
    def validate(terms: LoanTerms) -> List[ValidationError]:
        return validate_loan_terms(terms)

    @staticmethod
    def is_valid(terms: LoanTerms) -> bool:
        return is_valid_loan_terms(terms)

    @staticmethod
    def calculate_payment(terms: LoanTerms) -> PaymentCalculationResult:
        """Calculate the regular payment and lifetime totals"""
        return calculate_loan_payment(terms)

    @staticmethod
    def generate_schedule(terms: LoanTerms) -> AmortizationSchedule:
        return generate_amortization_schedule(terms)

    @staticmethod
    def generate_partial_schedule(
        terms: LoanTerms,
        starting_balance: DecimalLike,
        starting_payment_number: int,
        number_of_payments: int
    ) -> Tuple[ScheduledPayment, ...]:
        return generate_partial_schedule(
            terms, to_decimal(starting_balance), starting_payment_number, number_of_payments
        )

    @staticmethod
    def calculate_interest(params: InterestCalculationParams) -> InterestCalculationResult:
        """Calculate simple interest"""
        return calculate_simple_interest(params)

    @staticmethod
    def calculate_compound_interest(
        principal: DecimalLike,
        annual_rate: DecimalLike,
        years: DecimalLike,
        compounding_frequency: int = 12,
        rounding_config: Optional[RoundingConfig] = None
    ) -> Decimal:
        """Compound interest over a number of years"""
        return calculate_compound_interest_for_years(
            principal, annual_rate, years, compounding_frequency, rounding_config
        )

    @staticmethod
    def calculate_daily_interest(
        balance: DecimalLike,
        annual_rate: DecimalLike,
        day_count_convention: Union[DayCountConvention, str] = DayCountConvention.THIRTY_360,
        on_date: Optional[DateLike] = None,
        rounding_config: Optional[RoundingConfig] = None
    ) -> Decimal:
        """Interest accruing for one day (on_date defaults to today)"""
        accrual_date = _to_date(on_date) or date.today()
        return calculate_daily_interest_accrual(
            balance,
            annual_rate,
            DayCountConvention.coerce(day_count_convention),
            accrual_date,
            rounding_config
        )

    @staticmethod
    def calculate_accrued_interest(
        principal: DecimalLike,
        annual_rate: DecimalLike,
        start_date: DateLike,
        end_date: DateLike,
        day_count_convention: Union[DayCountConvention, str] = DayCountConvention.THIRTY_360,
        rounding_config: Optional[RoundingConfig] = None
    ) -> Decimal:
        return calculate_accrued_interest(
            principal,
            annual_rate,
            parse_date(start_date),
            parse_date(end_date),
            DayCountConvention.coerce(day_count_convention),
            None,
            rounding_config
        )

    @staticmethod
    def calculate_effective_rate(nominal_rate: DecimalLike, compounding_frequency: int = 12) -> Decimal:
        """Effective annual rate from a nominal rate"""
        return calculate_effective_interest_rate(nominal_rate, compounding_frequency)

    @staticmethod
    def calculate_nominal_rate(effective_rate: DecimalLike, compounding_frequency: int = 12) -> Decimal:
        """Nominal annual rate from an effective rate"""
        return calculate_nominal_interest_rate(effective_rate, compounding_frequency)

    @staticmethod
    def apply_prepayment(schedule: AmortizationSchedule,
                         prepayment: PrepaymentParams) -> AmortizationSchedule:
        """Apply an extra payment and recalculate the schedule"""
        return recalculate_with_prepayment(
            schedule,
            to_decimal(prepayment.amount),
            prepayment.date,
            prepayment.apply_to_principal
        )

    @staticmethod
    def apply_modification(terms: LoanTerms, modification: LoanModification,
                           current_balance: DecimalLike) -> LoanTerms:
        """
        Build new terms for a modified loan

        The outstanding balance (plus any principal adjustment) becomes the
        new principal and the modification's effective date the new start.
        """
        principal = to_decimal(current_balance)
        if modification.principal_adjustment is not None:
            principal += to_decimal(modification.principal_adjustment)

        new_rate = terms.annual_interest_rate
        if modification.new_rate is not None:
            new_rate = to_decimal(modification.new_rate)

        new_term = terms.term_months
        if modification.new_term_months is not None:
            new_term = modification.new_term_months

        return terms.with_changes(
            principal=principal,
            annual_interest_rate=new_rate,
            term_months=new_term,
            start_date=modification.effective_date
        )

    @staticmethod
    def calculate_apr(principal: DecimalLike, monthly_payment: DecimalLike,
                      term_months: int, upfront_fees: DecimalLike = 0) -> Decimal:
        """APR including upfront fees"""
        return _calculate_apr(
            to_decimal(principal), to_decimal(monthly_payment), term_months, to_decimal(upfront_fees)
        )

    @staticmethod
    def detect_balloon_payments(
        schedule: AmortizationSchedule,
        config: Optional[BalloonDetectionConfig] = None
    ) -> List[BalloonDetectionResult]:
        return _detect_balloon_payments(schedule, config or BalloonDetectionConfig())

    @staticmethod
    def apply_balloon_strategy(
        schedule: AmortizationSchedule,
        balloon: BalloonDetectionResult,
        strategy_config: BalloonStrategyConfig,
        terms: LoanTerms
    ) -> BalloonStrategyResult:
        return apply_balloon_strategy(schedule, balloon, strategy_config, terms)

    @staticmethod
    def format_currency(value: DecimalLike, symbol: str = '$', decimal_places: int = 2) -> str:
        return format_currency(to_decimal(value), symbol, decimal_places)

    @staticmethod
    def format_percentage(value: DecimalLike, decimal_places: int = 2) -> str:
        return format_percentage(to_decimal(value), decimal_places)

    @staticmethod
    def format_date(value: DateLike, fmt: str = "%Y-%m-%d") -> str:
        return format_date(parse_date(value), fmt)

    @staticmethod
    def parse_date(value: str, fmt: Optional[str] = None) -> date:
        return parse_date(value, fmt)

    @staticmethod
    def get_next_payment_date(current_date: DateLike,
                              frequency: Union[PaymentFrequency, str]) -> date:
        return next_payment_date(parse_date(current_date), PaymentFrequency.coerce(frequency))

    @staticmethod
    def get_remaining_balance(schedule: AmortizationSchedule, payment_number: int) -> Decimal:
        """Balance after the given payment (0 when the payment does not exist)"""
        payment = schedule.get_payment(payment_number)
        return payment.remaining_balance if payment else Decimal('0')

    @staticmethod
    def get_total_interest_paid(schedule: AmortizationSchedule, payment_number: int) -> Decimal:
        """Interest paid through the given payment (0 when the payment does not exist)"""
        payment = schedule.get_payment(payment_number)
        return payment.cumulative_interest if payment else Decimal('0')

    @staticmethod
    def get_payoff_amount(schedule: AmortizationSchedule, payoff_date: DateLike,
                          include_accrued_interest: bool = True) -> Decimal:
        """
        Amount needed to pay the loan off on a date

        Starts from the balance after the last payment due on or before the
        date. Accrued interest since that payment is approximated with the
        schedule's effective rate over a 365-day year. Before the first
        payment the full principal is owed.
        """
        payoff_on = parse_date(payoff_date)

        last_payment = None
        for payment in schedule.payments:
            if payment.due_date > payoff_on:
                break
            last_payment = payment

        if last_payment is None:
            return schedule.total_principal

        payoff_amount = last_payment.remaining_balance
        if include_accrued_interest and last_payment.remaining_balance > 0:
            days = (payoff_on - last_payment.due_date).days
            daily_rate = schedule.effective_interest_rate / DAYS_PER_YEAR_PERCENT
            payoff_amount += last_payment.remaining_balance * daily_rate * days

        return round_money(payoff_amount, schedule.loan_terms.rounding_config)


# Function-style aliases for the primary operations
create_loan_terms = LoanEngine.create_loan
calculate_payment = LoanEngine.calculate_payment
generate_schedule = LoanEngine.generate_schedule
calculate_apr = LoanEngine.calculate_apr
detect_balloon_payments = LoanEngine.detect_balloon_payments


def apply_prepayment(
    schedule: AmortizationSchedule,
    prepayment_amount: DecimalLike,
    prepayment_date: DateLike,
    apply_to_principal: bool = True
) -> AmortizationSchedule:
    """Apply an extra payment given as loose values and recalculate the schedule"""
    return recalculate_with_prepayment(
        schedule,
        to_decimal(prepayment_amount),
        parse_date(prepayment_date),
        apply_to_principal
    )


__all__ = [
    "LoanEngine",
    "create_loan_terms",
    "validate_loan_terms",
    "calculate_payment",
    "generate_schedule",
    "apply_prepayment",
    "calculate_apr",
    "detect_balloon_payments",
    "apply_split_payment_strategy",
    "apply_extend_contract_strategy",
    "apply_hybrid_strategy",
]
