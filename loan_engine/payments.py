"""
Payment Calculator Module

Closed-form payment formulas (fully amortizing, interest-only and
balloon-adjusted) and the iterative solvers for the effective rate
(Newton-Raphson) and fee-inclusive APR (bisection).

The solvers never fail on non-convergence: after the iteration ceiling they
return the best estimate reached.
"""

from decimal import Decimal
from typing import Optional
import logging

from .rounding import (
    RoundingConfig, round_money, round_places, safe_divide, compound_interest_factor,
    is_zero, to_decimal, ZERO, ONE, HUNDRED,
)
from .day_count import PaymentFrequency, periods_per_year
from .models import LoanTerms, PaymentCalculationResult


logger = logging.getLogger("loan_engine.payments")

MAX_SOLVER_ITERATIONS = 100

# Newton-Raphson effective rate solver
NEWTON_TOLERANCE = Decimal('0.000001')
NEWTON_RATE_DELTA = Decimal('0.0001')
NEWTON_RATE_FLOOR = Decimal('0.001')

# Bisection APR solver
BISECTION_TOLERANCE = Decimal('0.00001')

RATE_DECIMAL_PLACES = 6


def get_payment_periods_per_year(frequency: PaymentFrequency) -> int:
    """Get number of payment periods per year for a frequency"""
    return periods_per_year(frequency)


def period_rate_for(annual_rate: Decimal, frequency: PaymentFrequency) -> Decimal:
    """Convert an annual percentage rate into a fractional period rate"""
    return safe_divide(to_decimal(annual_rate), Decimal(periods_per_year(frequency)) * HUNDRED)


def calculate_amortizing_payment(
    principal: Decimal,
    annual_rate: Decimal,
    number_of_payments: int,
    payment_frequency: PaymentFrequency,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """
    Calculate the level payment for a fully amortizing loan

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` the period rate and ``n`` the number
    of payments. When the rate is zero the payment simplifies to ``P / n``.
    """
    principal = to_decimal(principal)
    if is_zero(to_decimal(annual_rate)):
        return round_money(safe_divide(principal, Decimal(number_of_payments)), rounding_config)

    period_rate = period_rate_for(annual_rate, payment_frequency)
    factor = compound_interest_factor(period_rate, number_of_payments)
    payment = safe_divide(principal * period_rate * factor, factor - ONE)
    return round_money(payment, rounding_config)


def calculate_interest_only_payment(
    principal: Decimal,
    annual_rate: Decimal,
    payment_frequency: PaymentFrequency,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """Calculate payment for an interest-only loan: principal x period rate"""
    period_rate = period_rate_for(annual_rate, payment_frequency)
    return round_money(to_decimal(principal) * period_rate, rounding_config)


def calculate_payment_with_balloon(
    principal: Decimal,
    annual_rate: Decimal,
    number_of_payments: int,
    balloon_amount: Decimal,
    payment_frequency: PaymentFrequency,
    rounding_config: Optional[RoundingConfig] = None
) -> Decimal:
    """
    Calculate the level payment when a balloon remains at maturity

    The balloon is discounted to present value over the term and the rest of
    the principal is amortized normally. At a zero rate the balloon is
    subtracted directly.
    """
    principal = to_decimal(principal)
    balloon_amount = to_decimal(balloon_amount)
    if is_zero(to_decimal(annual_rate)):
        return round_money(
            safe_divide(principal - balloon_amount, Decimal(number_of_payments)),
            rounding_config
        )

    period_rate = period_rate_for(annual_rate, payment_frequency)
    discount_factor = compound_interest_factor(period_rate, number_of_payments)
    balloon_pv = safe_divide(balloon_amount, discount_factor)

    return calculate_amortizing_payment(
        principal - balloon_pv,
        annual_rate,
        number_of_payments,
        payment_frequency,
        rounding_config
    )


def calculate_regular_payment(terms: LoanTerms) -> Decimal:
    """Level payment for the loan terms, chosen by balloon and interest type"""
    n = terms.number_of_payments
    if terms.has_balloon:
        return calculate_payment_with_balloon(
            terms.principal,
            terms.annual_interest_rate,
            n,
            terms.balloon_payment,
            terms.payment_frequency,
            terms.rounding_config
        )
    if terms.is_interest_only:
        return calculate_interest_only_payment(
            terms.principal,
            terms.annual_interest_rate,
            terms.payment_frequency,
            terms.rounding_config
        )
    return calculate_amortizing_payment(
        terms.principal,
        terms.annual_interest_rate,
        n,
        terms.payment_frequency,
        terms.rounding_config
    )


def calculate_loan_payment(terms: LoanTerms) -> PaymentCalculationResult:
    """
    Calculate the payment amount and totals for a loan

    Args:
        terms: Loan terms

    Returns:
        PaymentCalculationResult with rounded payment, totals and the
        Newton-Raphson effective rate
    """
    n = terms.number_of_payments
    payment = calculate_regular_payment(terms)
    balloon = terms.balloon_payment if terms.has_balloon else ZERO

    total_payments = payment * n + balloon
    if terms.is_interest_only and not terms.has_balloon:
        # Level payments are interest only; principal is repaid at maturity
        total_payments += terms.principal
    total_interest = total_payments - terms.principal

    effective_rate = calculate_effective_rate(
        terms.principal,
        payment,
        n,
        terms.payment_frequency,
        balloon if terms.has_balloon else None
    )

    return PaymentCalculationResult(
        monthly_payment=round_money(payment, terms.rounding_config),
        total_interest=round_money(total_interest, terms.rounding_config),
        total_payments=round_money(total_payments, terms.rounding_config),
        effective_interest_rate=effective_rate,
        number_of_payments=n
    )


def calculate_present_value(
    payment: Decimal,
    period_rate: Decimal,
    number_of_payments: int,
    balloon_payment: Optional[Decimal] = None
) -> Decimal:
    """Present value of a level payment stream plus an optional balloon"""
    balloon = balloon_payment if balloon_payment is not None and balloon_payment > 0 else ZERO
    if is_zero(period_rate):
        return payment * number_of_payments + balloon

    factor = compound_interest_factor(period_rate, number_of_payments)
    pv_annuity = payment * safe_divide(factor - ONE, period_rate * factor)
    pv_balloon = safe_divide(balloon, factor)
    return pv_annuity + pv_balloon


def calculate_effective_rate(
    principal: Decimal,
    payment: Decimal,
    number_of_payments: int,
    payment_frequency: PaymentFrequency,
    balloon_payment: Optional[Decimal] = None,
    max_iterations: int = MAX_SOLVER_ITERATIONS
) -> Decimal:
    """
    Solve for the annual rate equating the payment stream's PV to principal

    Newton-Raphson on the period rate, seeded at 5% annual, with the
    derivative estimated by a small rate perturbation. Negative iterates are
    reset to a small positive floor. Returns period rate x periods x 100,
    whether or not the tolerance was reached.
    """
    principal = to_decimal(principal)
    payment = to_decimal(payment)
    ppy = periods_per_year(payment_frequency)
    rate = Decimal('0.05') / ppy

    for iteration in range(max_iterations):
        pv = calculate_present_value(payment, rate, number_of_payments, balloon_payment)
        difference = pv - principal
        if abs(difference) < NEWTON_TOLERANCE:
            logger.debug("Effective rate converged after %d iterations", iteration + 1)
            return round_places(rate * ppy * HUNDRED, RATE_DECIMAL_PLACES)

        pv_delta = calculate_present_value(
            payment, rate + NEWTON_RATE_DELTA, number_of_payments, balloon_payment
        )
        derivative = safe_divide(pv_delta - pv, NEWTON_RATE_DELTA)
        rate = rate - safe_divide(difference, derivative)

        if rate < 0:
            rate = NEWTON_RATE_FLOOR

    logger.warning(
        "Effective rate did not converge within %d iterations; returning best estimate",
        max_iterations
    )
    return round_places(rate * ppy * HUNDRED, RATE_DECIMAL_PLACES)


def calculate_apr(
    principal: Decimal,
    monthly_payment: Decimal,
    term_months: int,
    upfront_fees: Decimal = ZERO,
    max_iterations: int = MAX_SOLVER_ITERATIONS
) -> Decimal:
    """
    Calculate APR including financed fees

    Bisection over the annual rate in [0%, 100%] for the rate at which the
    PV of the monthly payments equals the net amount received (principal
    minus fees). Returns 0 when the payment is zero or fees consume the
    principal.
    """
    principal = to_decimal(principal)
    payment = to_decimal(monthly_payment)
    net_principal = principal - to_decimal(upfront_fees)

    if payment == 0 or net_principal <= 0:
        return ZERO

    low_rate = ZERO
    high_rate = ONE

    for _ in range(max_iterations):
        mid_rate = (low_rate + high_rate) / 2
        pv = calculate_present_value(payment, mid_rate / 12, term_months)
        diff = pv - net_principal

        if abs(diff) < BISECTION_TOLERANCE:
            return round_places(mid_rate * HUNDRED, RATE_DECIMAL_PLACES)

        if diff > 0:
            # PV too high, increase rate
            low_rate = mid_rate
        else:
            high_rate = mid_rate

    logger.debug("APR bisection exhausted %d iterations; returning midpoint", max_iterations)
    return round_places((low_rate + high_rate) / 2 * HUNDRED, RATE_DECIMAL_PLACES)
