"""
Amortization Schedule Module

Generates full payment schedules from loan terms (irregular first periods,
interest-only and balloon tails included), partial schedules from a
starting balance, and schedules recalculated after a prepayment.
"""

from decimal import Decimal
from datetime import date
from dataclasses import replace
from typing import List, Optional, Tuple
import logging
import math

from .rounding import round_money, round_places, safe_divide, is_zero, to_decimal, ZERO, HUNDRED
from .day_count import PaymentFrequency, next_payment_date, periods_per_year
from .models import (
    LoanTerms, ScheduledPayment, AmortizationSchedule,
)
from .payments import calculate_regular_payment, period_rate_for
from .interest import calculate_irregular_period_interest
from .logging_config import log_calculation


logger = logging.getLogger("loan_engine.amortization")

APR_DECIMAL_PLACES = 3


def _has_irregular_first_period(terms: LoanTerms) -> bool:
    """A first payment date off the natural stepping date starts with a stub period"""
    if terms.first_payment_date is None:
        return False
    return terms.first_payment_date != next_payment_date(terms.start_date, terms.payment_frequency)


def _period_interest(terms: LoanTerms, balance: Decimal, payment_number: int,
                     period_start: date, period_end: date,
                     irregular_first: bool) -> Decimal:
    if payment_number == 1 and irregular_first:
        return calculate_irregular_period_interest(
            balance,
            terms.annual_interest_rate,
            period_start,
            period_end,
            terms.day_count_convention,
            terms.rounding_config
        )
    period_rate = period_rate_for(terms.annual_interest_rate, terms.payment_frequency)
    return round_money(balance * period_rate, terms.rounding_config)


def generate_amortization_schedule(terms: LoanTerms) -> AmortizationSchedule:
    """
    Generate a complete amortization schedule for a loan

    Args:
        terms: Loan terms

    Returns:
        AmortizationSchedule whose rows satisfy principal + interest ==
        total_payment and beginning_balance - principal == ending_balance
    """
    rounding = terms.rounding_config
    number_of_payments = terms.number_of_payments
    regular_payment = calculate_regular_payment(terms)
    balloon = terms.balloon_payment if terms.has_balloon else None
    irregular_first = _has_irregular_first_period(terms)

    payments: List[ScheduledPayment] = []
    remaining_balance = round_money(terms.principal, rounding)
    cumulative_interest = ZERO
    cumulative_principal = ZERO

    current_date = terms.first_payment_date or next_payment_date(
        terms.start_date, terms.payment_frequency
    )
    previous_date = terms.start_date

    for payment_number in range(1, number_of_payments + 1):
        is_final = payment_number == number_of_payments
        beginning_balance = remaining_balance

        interest = _period_interest(
            terms, remaining_balance, payment_number,
            previous_date, current_date, irregular_first
        )

        if terms.is_interest_only and balloon is None:
            # Principal is repaid in full with the final payment only
            principal = remaining_balance if is_final else ZERO
        elif is_final and balloon is not None:
            # Leave exactly the balloon outstanding
            principal = max(remaining_balance - balloon, ZERO)
        elif is_final:
            principal = remaining_balance
        else:
            principal = max(regular_payment - interest, ZERO)

        principal = round_money(min(principal, remaining_balance), rounding)
        total_payment = interest + principal

        remaining_balance = round_money(remaining_balance - principal, rounding)
        cumulative_interest += interest
        cumulative_principal += principal

        payments.append(ScheduledPayment(
            payment_number=payment_number,
            due_date=current_date,
            principal=principal,
            interest=interest,
            total_payment=total_payment,
            beginning_balance=beginning_balance,
            ending_balance=remaining_balance,
            cumulative_interest=cumulative_interest,
            cumulative_principal=cumulative_principal
        ))

        previous_date = current_date
        current_date = next_payment_date(current_date, terms.payment_frequency)

    if balloon is not None and remaining_balance > 0:
        balloon_principal = round_money(remaining_balance, rounding)
        cumulative_principal += balloon_principal
        payments.append(ScheduledPayment(
            payment_number=len(payments) + 1,
            due_date=terms.balloon_payment_date or current_date,
            principal=balloon_principal,
            interest=ZERO,
            total_payment=balloon_principal,
            beginning_balance=remaining_balance,
            ending_balance=ZERO,
            cumulative_interest=cumulative_interest,
            cumulative_principal=cumulative_principal
        ))

    total_interest = sum((p.interest for p in payments), ZERO)
    effective_rate = calculate_effective_apr(
        terms.principal, payments, terms.payment_frequency
    )

    log_calculation(
        logger, "debug", "Generated amortization schedule",
        operation="generate_schedule",
        extra={
            "payments": len(payments),
            "regular_payment": str(regular_payment),
            "total_interest": str(total_interest),
            "irregular_first_period": irregular_first,
        }
    )

    return AmortizationSchedule(
        payments=tuple(payments),
        total_interest=total_interest,
        total_principal=terms.principal,
        total_payments=terms.principal + total_interest,
        effective_interest_rate=effective_rate,
        last_payment_date=payments[-1].due_date if payments else current_date,
        loan_terms=terms
    )


def calculate_effective_apr(principal: Decimal, payments, payment_frequency: PaymentFrequency) -> Decimal:
    """
    Approximate APR from the realized payments

    (total interest / principal) x (12 / term in months) x 100, rounded to
    three places. This is a simple approximation and is reported separately
    from the Newton-Raphson effective rate.
    """
    total_interest = sum((p.interest for p in payments), ZERO)
    if is_zero(total_interest) or not payments:
        return ZERO

    term_months = Decimal(len(payments)) * 12 / periods_per_year(payment_frequency)
    apr = safe_divide(total_interest, principal) * 12 / term_months * HUNDRED
    return round_places(apr, APR_DECIMAL_PLACES)


def generate_partial_schedule(
    terms: LoanTerms,
    starting_balance: Decimal,
    starting_payment_number: int,
    number_of_payments: int
) -> Tuple[ScheduledPayment, ...]:
    """
    Generate the next payments of a loan from an outstanding balance

    The balance is amortized over just enough months to cover the requested
    number of payments, and rows are renumbered to continue from
    starting_payment_number.
    """
    term_months = math.ceil(
        Decimal(number_of_payments) * 12 / periods_per_year(terms.payment_frequency)
    )
    partial_terms = terms.with_changes(
        principal=to_decimal(starting_balance),
        term_months=term_months
    )
    schedule = generate_amortization_schedule(partial_terms)

    offset = starting_payment_number - 1
    return tuple(
        replace(payment, payment_number=payment.payment_number + offset)
        for payment in schedule.payments[:number_of_payments]
    )


def recalculate_with_prepayment(
    schedule: AmortizationSchedule,
    prepayment_amount: Decimal,
    prepayment_date: date,
    apply_to_principal: bool = True
) -> AmortizationSchedule:
    """
    Recalculate a schedule after an extra payment

    Payments due on or before the prepayment date are kept unchanged. The
    balance at that point is reduced by the prepayment and the remaining
    payments are replayed at their original amounts, so the loan pays off
    early rather than with smaller installments.

    Args:
        schedule: Original schedule
        prepayment_amount: Extra amount paid
        prepayment_date: Date the extra amount is received
        apply_to_principal: Whether the amount reduces principal

    Returns:
        New AmortizationSchedule (the original is returned unchanged when the
        prepayment falls after the last payment)
    """
    prepayment_amount = to_decimal(prepayment_amount)
    rounding = schedule.loan_terms.rounding_config
    original = schedule.payments

    prepayment_index: Optional[int] = None
    for index, payment in enumerate(original):
        if payment.due_date > prepayment_date:
            prepayment_index = index
            break

    if prepayment_index is None:
        logger.debug("Prepayment on %s falls after the last payment; schedule unchanged",
                     prepayment_date)
        return schedule

    new_payments = list(original[:prepayment_index])
    if prepayment_index > 0:
        remaining_balance = original[prepayment_index - 1].ending_balance
    else:
        remaining_balance = original[0].beginning_balance

    last_payment_date = new_payments[-1].due_date if new_payments else schedule.last_payment_date

    if apply_to_principal:
        remaining_balance = round_money(remaining_balance - prepayment_amount, rounding)

        if remaining_balance <= 0:
            total_interest = sum((p.interest for p in new_payments), ZERO)
            return replace(
                schedule,
                payments=tuple(new_payments),
                total_interest=total_interest,
                total_payments=schedule.total_principal + total_interest,
                last_payment_date=prepayment_date
            )

        if new_payments:
            cumulative_interest = new_payments[-1].cumulative_interest
            cumulative_principal = new_payments[-1].cumulative_principal
        else:
            cumulative_interest = ZERO
            cumulative_principal = ZERO
        # The prepayment itself is principal repaid
        cumulative_principal += original[prepayment_index].beginning_balance - remaining_balance

        last_index = len(original) - 1
        for index in range(prepayment_index, len(original)):
            source = original[index]
            period_ratio = safe_divide(source.interest, source.beginning_balance)
            interest = round_money(remaining_balance * period_ratio, rounding)

            if index == last_index:
                principal = remaining_balance
            else:
                principal = min(max(source.total_payment - interest, ZERO), remaining_balance)
            principal = round_money(principal, rounding)

            beginning_balance = remaining_balance
            remaining_balance = round_money(remaining_balance - principal, rounding)
            cumulative_interest += interest
            cumulative_principal += principal

            new_payments.append(replace(
                source,
                principal=principal,
                interest=interest,
                total_payment=interest + principal,
                beginning_balance=beginning_balance,
                ending_balance=remaining_balance,
                cumulative_interest=cumulative_interest,
                cumulative_principal=cumulative_principal
            ))

            if remaining_balance <= 0:
                break

        last_payment_date = new_payments[-1].due_date

    total_interest = sum((p.interest for p in new_payments), ZERO)
    log_calculation(
        logger, "debug", "Recalculated schedule after prepayment",
        operation="apply_prepayment",
        extra={
            "prepayment_amount": str(prepayment_amount),
            "payments_before": len(original),
            "payments_after": len(new_payments),
        }
    )

    return replace(
        schedule,
        payments=tuple(new_payments),
        total_interest=total_interest,
        total_payments=schedule.total_principal + total_interest,
        last_payment_date=last_payment_date
    )
