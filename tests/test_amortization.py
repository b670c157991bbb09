"""
Test suite for amortization schedule generation

Every generated schedule must repay exactly the original principal, keep
principal + interest == total payment on every row and never let the
balance increase.
"""

import pytest
from decimal import Decimal
from datetime import date, timedelta

from loan_engine.models import LoanTerms, InterestType
from loan_engine.day_count import PaymentFrequency, DayCountConvention
from loan_engine.rounding import RoundingConfig, RoundingMethod
from loan_engine.amortization import (
    generate_amortization_schedule, generate_partial_schedule,
    recalculate_with_prepayment, calculate_effective_apr,
)


def make_terms(**overrides):
    values = dict(
        principal=Decimal('100000'),
        annual_interest_rate=Decimal('5'),
        term_months=360,
        start_date=date(2024, 1, 1),
    )
    values.update(overrides)
    return LoanTerms(**values)


def assert_schedule_invariants(schedule, principal, final_balance=Decimal('0')):
    payments = schedule.payments
    assert sum(p.principal for p in payments) == principal
    previous_ending = None
    for payment in payments:
        assert payment.principal + payment.interest == payment.total_payment
        assert payment.beginning_balance - payment.principal == payment.ending_balance
        if previous_ending is not None:
            assert payment.beginning_balance == previous_ending
            assert payment.ending_balance <= previous_ending
        previous_ending = payment.ending_balance
    assert payments[-1].ending_balance == final_balance


class TestScheduleGeneration:
    """Test standard amortizing schedules"""

    def test_thirty_year_schedule(self):
        schedule = generate_amortization_schedule(make_terms())

        assert len(schedule) == 360
        first = schedule.payments[0]
        assert first.interest == Decimal('416.67')
        assert first.principal == Decimal('120.15')
        assert first.total_payment == Decimal('536.82')
        assert first.due_date == date(2024, 2, 1)
        assert_schedule_invariants(schedule, Decimal('100000'))

    def test_totals_and_cumulative_figures(self):
        schedule = generate_amortization_schedule(make_terms())
        last = schedule.final_payment

        assert schedule.total_principal == Decimal('100000')
        assert schedule.total_interest == last.cumulative_interest
        assert last.cumulative_principal == Decimal('100000')
        assert schedule.total_payments == schedule.total_principal + schedule.total_interest
        assert schedule.last_payment_date == date(2054, 1, 1)

    def test_single_period_loan(self):
        """One monthly payment repays principal plus one month of interest"""
        terms = make_terms(annual_interest_rate=Decimal('6'), term_months=1)
        schedule = generate_amortization_schedule(terms)

        assert len(schedule) == 1
        payment = schedule.payments[0]
        assert payment.interest == Decimal('500.00')
        assert payment.principal == Decimal('100000.00')
        assert payment.total_payment == Decimal('100500.00')
        assert payment.ending_balance == Decimal('0.00')

    def test_zero_rate(self):
        """Zero rate means no interest and equal principal portions"""
        schedule = generate_amortization_schedule(
            make_terms(principal=Decimal('12000'), annual_interest_rate=Decimal('0'), term_months=12)
        )

        assert all(p.interest == 0 for p in schedule.payments)
        assert {p.principal for p in schedule.payments} == {Decimal('1000.00')}
        assert schedule.effective_interest_rate == Decimal('0')
        assert_schedule_invariants(schedule, Decimal('12000'))

    def test_zero_rate_uneven_split(self):
        """Rounding drift lands on the final payment, within one cent"""
        schedule = generate_amortization_schedule(
            make_terms(principal=Decimal('10000'), annual_interest_rate=Decimal('0'), term_months=3)
        )
        principals = [p.principal for p in schedule.payments]

        assert principals == [Decimal('3333.33'), Decimal('3333.33'), Decimal('3333.34')]
        assert max(principals) - min(principals) <= Decimal('0.01')

    def test_bi_weekly_dates(self):
        schedule = generate_amortization_schedule(
            make_terms(term_months=12, payment_frequency=PaymentFrequency.BI_WEEKLY)
        )

        assert len(schedule) == 26
        assert schedule.payments[0].due_date == date(2024, 1, 15)
        assert schedule.payments[1].due_date - schedule.payments[0].due_date == timedelta(days=14)
        assert_schedule_invariants(schedule, Decimal('100000'))

    def test_whole_unit_rounding(self):
        terms = make_terms(rounding_config=RoundingConfig(RoundingMethod.HALF_UP, 0))
        schedule = generate_amortization_schedule(terms)

        assert schedule.payments[0].total_payment == Decimal('537')
        assert all(p.interest == p.interest.to_integral_value() for p in schedule.payments)
        assert_schedule_invariants(schedule, Decimal('100000'))

    def test_approximate_apr(self):
        terms = make_terms(annual_interest_rate=Decimal('6'), term_months=1)
        schedule = generate_amortization_schedule(terms)
        assert schedule.effective_interest_rate == Decimal('6.000')

    def test_apr_of_empty_payments(self):
        assert calculate_effective_apr(Decimal('1000'), [], PaymentFrequency.MONTHLY) == Decimal('0')


class TestIrregularFirstPeriod:
    """Test first payment dates off the natural cycle"""

    def test_long_first_period(self):
        terms = make_terms(first_payment_date=date(2024, 2, 15))
        schedule = generate_amortization_schedule(terms)

        # 44 days on 30/360
        assert schedule.payments[0].interest == Decimal('611.11')
        assert schedule.payments[0].due_date == date(2024, 2, 15)
        assert schedule.payments[1].due_date == date(2024, 3, 15)
        assert_schedule_invariants(schedule, Decimal('100000'))

    def test_natural_first_date_is_regular(self):
        terms = make_terms(first_payment_date=date(2024, 2, 1))
        schedule = generate_amortization_schedule(terms)
        assert schedule.payments[0].interest == Decimal('416.67')


class TestInterestOnlyAndBalloon:
    """Test interest-only and balloon schedules"""

    def test_simple_interest_repays_principal_at_maturity(self):
        """Simple interest never reduces the balance before the last payment"""
        terms = make_terms(
            term_months=12,
            interest_type=InterestType.SIMPLE,
            day_count_convention=DayCountConvention.ACTUAL_365
        )
        schedule = generate_amortization_schedule(terms)

        for payment in schedule.payments[:-1]:
            assert payment.principal == Decimal('0')
            assert payment.interest == Decimal('416.67')
            assert payment.total_payment == payment.interest
        final = schedule.final_payment
        assert final.principal == Decimal('100000.00')
        assert final.total_payment == Decimal('100416.67')
        assert_schedule_invariants(schedule, Decimal('100000'))

    def test_interest_only(self):
        terms = make_terms(annual_interest_rate=Decimal('6'), term_months=12,
                           interest_type=InterestType.INTEREST_ONLY)
        schedule = generate_amortization_schedule(terms)

        for payment in schedule.payments[:-1]:
            assert payment.principal == Decimal('0')
            assert payment.interest == Decimal('500.00')
            assert payment.ending_balance == Decimal('100000.00')
        final = schedule.final_payment
        assert final.principal == Decimal('100000.00')
        assert final.total_payment == Decimal('100500.00')
        assert_schedule_invariants(schedule, Decimal('100000'))

    def test_balloon_tail(self):
        terms = make_terms(annual_interest_rate=Decimal('6'), term_months=60,
                           balloon_payment=Decimal('20000'))
        schedule = generate_amortization_schedule(terms)

        assert len(schedule) == 61
        assert schedule.payments[59].ending_balance == Decimal('20000.00')
        balloon = schedule.final_payment
        assert balloon.payment_number == 61
        assert balloon.principal == Decimal('20000.00')
        assert balloon.interest == Decimal('0')
        assert balloon.due_date == date(2029, 2, 1)
        assert_schedule_invariants(schedule, Decimal('100000'))

    def test_balloon_date(self):
        terms = make_terms(annual_interest_rate=Decimal('6'), term_months=60,
                           balloon_payment=Decimal('20000'),
                           balloon_payment_date=date(2029, 3, 15))
        schedule = generate_amortization_schedule(terms)

        assert schedule.final_payment.due_date == date(2029, 3, 15)
        assert schedule.last_payment_date == date(2029, 3, 15)


class TestPartialSchedule:
    """Test schedules generated from an outstanding balance"""

    def test_renumbered_rows(self):
        payments = generate_partial_schedule(make_terms(), Decimal('50000'), 13, 6)

        assert [p.payment_number for p in payments] == [13, 14, 15, 16, 17, 18]
        assert payments[0].beginning_balance == Decimal('50000.00')
        assert payments[-1].ending_balance == Decimal('0.00')


class TestPrepayment:
    """Test schedule recalculation after prepayments"""

    @pytest.fixture
    def schedule(self):
        return generate_amortization_schedule(make_terms())

    def test_prepayment_after_last_payment(self, schedule):
        result = recalculate_with_prepayment(schedule, Decimal('1000'), date(2060, 1, 1))
        assert result is schedule

    def test_partial_prepayment_shortens_loan(self, schedule):
        result = recalculate_with_prepayment(schedule, Decimal('10000'), date(2024, 3, 15))

        assert result.payments[:2] == schedule.payments[:2]
        third = result.payments[2]
        assert third.beginning_balance == schedule.payments[1].ending_balance - Decimal('10000')
        assert third.total_payment == Decimal('536.82')
        assert len(result) < len(schedule)
        assert result.total_interest < schedule.total_interest
        assert result.final_payment.ending_balance == Decimal('0')
        assert result.last_payment_date == result.final_payment.due_date
        for payment in result.payments:
            assert payment.principal + payment.interest == payment.total_payment
            assert payment.beginning_balance - payment.principal == payment.ending_balance

    def test_prepayment_clears_balance(self, schedule):
        result = recalculate_with_prepayment(schedule, Decimal('200000'), date(2024, 3, 15))

        assert len(result) == 2
        assert result.last_payment_date == date(2024, 3, 15)
        assert result.total_interest == sum(p.interest for p in schedule.payments[:2])

    def test_prepayment_before_first_payment(self, schedule):
        result = recalculate_with_prepayment(schedule, Decimal('50000'), date(2024, 1, 1))

        assert result.payments[0].beginning_balance == Decimal('50000.00')
        assert result.payments[0].payment_number == 1
        assert result.final_payment.ending_balance == Decimal('0')

    def test_not_applied_to_principal(self, schedule):
        result = recalculate_with_prepayment(
            schedule, Decimal('10000'), date(2024, 3, 15), apply_to_principal=False
        )
        assert result.payments == schedule.payments[:2]
