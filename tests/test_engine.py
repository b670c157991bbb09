"""
Test suite for the LoanEngine facade

Tests loan creation from loose inputs, the function-style aliases,
modifications and the schedule query helpers.
"""

import pytest
from decimal import Decimal
from datetime import date

import loan_engine
from loan_engine import (
    LoanEngine, create_loan_terms, validate_loan_terms, calculate_payment,
    generate_schedule, apply_prepayment, calculate_apr, detect_balloon_payments,
)
from loan_engine.models import (
    InterestType, InterestCalculationParams, PrepaymentParams, LoanModification,
)
from loan_engine.day_count import PaymentFrequency, DayCountConvention
from loan_engine.rounding import RoundingConfig, RoundingMethod, round_money, round_places
from loan_engine.balloon_strategies import AllowBalloon, BalloonStrategy


@pytest.fixture
def terms():
    return LoanEngine.create_loan(
        principal="100000",
        annual_interest_rate="5",
        term_months=360,
        start_date="2024-01-01"
    )


class TestCreateLoan:
    """Test building loan terms"""

    def test_defaults_from_config(self, terms):
        assert terms.principal == Decimal('100000')
        assert terms.start_date == date(2024, 1, 1)
        assert terms.payment_frequency == PaymentFrequency.MONTHLY
        assert terms.interest_type == InterestType.AMORTIZED
        assert terms.day_count_convention == DayCountConvention.THIRTY_360
        assert terms.rounding_config == RoundingConfig(RoundingMethod.HALF_UP, 2)

    def test_explicit_options(self):
        terms = create_loan_terms(
            principal=Decimal('50000'),
            annual_interest_rate=Decimal('4.5'),
            term_months=60,
            start_date=date(2024, 3, 1),
            payment_frequency="quarterly",
            interest_type="interest-only",
            day_count_convention="actual/365",
            first_payment_date="2024-06-01",
            rounding_config=RoundingConfig(RoundingMethod.BANKERS, 2)
        )

        assert terms.payment_frequency == PaymentFrequency.QUARTERLY
        assert terms.interest_type == InterestType.INTEREST_ONLY
        assert terms.first_payment_date == date(2024, 6, 1)
        assert terms.number_of_payments == 20
        assert validate_loan_terms(terms) == []

    def test_invalid_terms_are_reported(self):
        terms = LoanEngine.create_loan("0", "5", 360, "2024-01-01")
        assert not LoanEngine.is_valid(terms)
        assert LoanEngine.validate(terms)[0].field == "principal"


class TestCalculations:
    """Test calculations through the facade"""

    def test_payment_and_schedule(self, terms):
        assert calculate_payment(terms).monthly_payment == Decimal('536.82')

        schedule = generate_schedule(terms)
        assert len(schedule) == 360
        assert schedule.total_principal == Decimal('100000')

    def test_interest(self):
        params = InterestCalculationParams(
            principal=Decimal('10000'),
            annual_rate=Decimal('5'),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 7, 1)
        )
        assert LoanEngine.calculate_interest(params).interest_amount == Decimal('250.00')
        assert LoanEngine.calculate_accrued_interest(
            "10000", "5", "2024-01-01", "2024-07-01"
        ) == Decimal('250.00')

    def test_daily_and_compound(self):
        assert LoanEngine.calculate_daily_interest("36000", "10", on_date="2024-05-01") == Decimal('10.00')
        assert LoanEngine.calculate_compound_interest("1000", "12", 1) == Decimal('126.83')

    def test_rate_conversion(self):
        assert LoanEngine.calculate_effective_rate(Decimal('12')) == Decimal('12.682503')
        nominal = LoanEngine.calculate_nominal_rate(Decimal('12.682503'))
        assert abs(nominal - Decimal('12')) < Decimal('0.0001')

    def test_apr(self):
        assert abs(calculate_apr("100000", "536.82", 360) - Decimal('5')) < Decimal('0.01')
        assert calculate_apr("100000", "536.82", 360, "3000") > Decimal('5')

    def test_prepayment(self, terms):
        schedule = generate_schedule(terms)
        result = LoanEngine.apply_prepayment(schedule, PrepaymentParams(amount=Decimal('10000'),
                                                                        date=date(2024, 6, 15)))
        assert len(result) < len(schedule)
        assert result.final_payment.ending_balance == Decimal('0')

    def test_prepayment_function(self, terms):
        """The package-level function takes the amount and date directly"""
        schedule = generate_schedule(terms)
        expected = LoanEngine.apply_prepayment(
            schedule, PrepaymentParams(amount=Decimal('10000'), date=date(2024, 6, 15))
        )

        assert apply_prepayment(schedule, Decimal('10000'), date(2024, 6, 15), True) == expected
        assert loan_engine.apply_prepayment(schedule, "10000", "2024-06-15") == expected

    def test_balloon_detection_and_strategy(self):
        terms = LoanEngine.create_loan("100000", "6", 60, "2024-01-01", balloon_payment="20000")
        schedule = generate_schedule(terms)
        balloons = detect_balloon_payments(schedule)

        assert len(balloons) == 1
        result = LoanEngine.apply_balloon_strategy(schedule, balloons[0], AllowBalloon(), terms)
        assert result.strategy == BalloonStrategy.ALLOW_BALLOON
        assert result.success


class TestModification:
    """Test loan modifications"""

    def test_rate_change(self, terms):
        modification = LoanModification(effective_date=date(2026, 1, 1), new_rate=Decimal('4'),
                                        reason="Rate reduction")
        new_terms = LoanEngine.apply_modification(terms, modification, Decimal('96000'))

        assert new_terms.principal == Decimal('96000')
        assert new_terms.annual_interest_rate == Decimal('4')
        assert new_terms.term_months == 360
        assert new_terms.start_date == date(2026, 1, 1)

    def test_term_and_principal_adjustment(self, terms):
        modification = LoanModification(effective_date=date(2026, 1, 1), new_term_months=240,
                                        principal_adjustment=Decimal('-1000'))
        new_terms = LoanEngine.apply_modification(terms, modification, "96000")

        assert new_terms.principal == Decimal('95000')
        assert new_terms.annual_interest_rate == Decimal('5')
        assert new_terms.term_months == 240


class TestScheduleQueries:
    """Test balance, interest and payoff lookups"""

    def test_remaining_balance(self, terms):
        schedule = generate_schedule(terms)

        assert LoanEngine.get_remaining_balance(schedule, 12) == schedule.payments[11].ending_balance
        assert LoanEngine.get_remaining_balance(schedule, 999) == Decimal('0')

    def test_total_interest_paid(self, terms):
        schedule = generate_schedule(terms)
        expected = sum(p.interest for p in schedule.payments[:12])

        assert LoanEngine.get_total_interest_paid(schedule, 12) == expected
        assert LoanEngine.get_total_interest_paid(schedule, 0) == Decimal('0')

    def test_payoff_before_first_payment(self, terms):
        schedule = generate_schedule(terms)
        assert LoanEngine.get_payoff_amount(schedule, "2024-01-15") == Decimal('100000')

    def test_payoff_on_due_date(self, terms):
        schedule = generate_schedule(terms)
        payoff = LoanEngine.get_payoff_amount(schedule, date(2024, 3, 1))
        assert payoff == schedule.payments[1].ending_balance

    def test_payoff_with_accrued_interest(self, terms):
        schedule = generate_schedule(terms)
        balance = schedule.payments[1].ending_balance

        without = LoanEngine.get_payoff_amount(schedule, date(2024, 3, 11), include_accrued_interest=False)
        with_interest = LoanEngine.get_payoff_amount(schedule, date(2024, 3, 11))

        assert without == balance
        accrued = balance * (schedule.effective_interest_rate / Decimal('36500')) * 10
        assert with_interest == round_places(balance + accrued, 2)
        assert with_interest > without

    def test_payoff_uses_loan_rounding(self):
        rounding = RoundingConfig(RoundingMethod.HALF_UP, 0)
        terms = LoanEngine.create_loan("100000", "5", 360, "2024-01-01", rounding_config=rounding)
        schedule = generate_schedule(terms)
        balance = schedule.payments[1].ending_balance

        payoff = LoanEngine.get_payoff_amount(schedule, date(2024, 3, 11))
        accrued = balance * (schedule.effective_interest_rate / Decimal('36500')) * 10

        assert payoff == round_money(balance + accrued, rounding)
        assert payoff == payoff.to_integral_value()
        assert payoff > balance

    def test_payoff_after_maturity(self, terms):
        schedule = generate_schedule(terms)
        assert LoanEngine.get_payoff_amount(schedule, date(2060, 1, 1)) == Decimal('0')


class TestFormatting:
    """Test display helpers"""

    def test_currency(self):
        assert LoanEngine.format_currency(Decimal('1234.567')) == "$1,234.57"
        assert LoanEngine.format_currency("-5") == "-$5.00"
        assert LoanEngine.format_currency(Decimal('1000'), "EUR ", 0) == "EUR 1,000"

    def test_percentage(self):
        assert LoanEngine.format_percentage(Decimal('5.125')) == "5.13%"

    def test_dates(self):
        assert LoanEngine.format_date("2024-03-05", "%d/%m/%Y") == "05/03/2024"
        assert LoanEngine.parse_date("2024-03-05") == date(2024, 3, 5)
        assert LoanEngine.get_next_payment_date("2024-01-31", "monthly") == date(2024, 2, 29)


class TestPackage:
    """Test the package surface"""

    def test_version(self):
        assert loan_engine.__version__ == "1.0.0"

    def test_exports(self):
        for name in loan_engine.__all__:
            assert hasattr(loan_engine, name)
