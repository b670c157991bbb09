"""
Test suite for loan term and prepayment validation

Validation returns every problem found as data; it never raises for bad
loan input.
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_engine.models import LoanTerms, ValidationErrorCode
from loan_engine.config import reload_config
from loan_engine.validation import (
    validate_loan_terms, validate_prepayment, is_valid_loan_terms, format_validation_errors,
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


def fields(errors):
    return [(e.field, e.code) for e in errors]


class TestLoanTermValidation:
    """Test individual field checks"""

    def test_valid_terms(self):
        assert validate_loan_terms(make_terms()) == []
        assert is_valid_loan_terms(make_terms())

    def test_principal(self):
        errors = validate_loan_terms(make_terms(principal=Decimal('0')))
        assert fields(errors) == [("principal", ValidationErrorCode.INVALID_VALUE)]
        assert errors[0].message == "Principal amount must be greater than zero"

        errors = validate_loan_terms(make_terms(principal=None))
        assert fields(errors) == [("principal", ValidationErrorCode.REQUIRED_FIELD)]

        errors = validate_loan_terms(make_terms(principal=Decimal('100000001')))
        assert fields(errors) == [("principal", ValidationErrorCode.MAX_VALUE_EXCEEDED)]

    def test_rate(self):
        errors = validate_loan_terms(make_terms(annual_interest_rate=Decimal('-1')))
        assert fields(errors) == [("annual_interest_rate", ValidationErrorCode.INVALID_VALUE)]

        errors = validate_loan_terms(make_terms(annual_interest_rate=Decimal('100.01')))
        assert fields(errors) == [("annual_interest_rate", ValidationErrorCode.MAX_VALUE_EXCEEDED)]
        assert errors[0].message == "Annual interest rate cannot exceed 100%"

    def test_zero_rate_is_valid(self):
        assert validate_loan_terms(make_terms(annual_interest_rate=Decimal('0'))) == []

    def test_term(self):
        errors = validate_loan_terms(make_terms(term_months=0))
        assert fields(errors) == [("term_months", ValidationErrorCode.INVALID_VALUE)]

        errors = validate_loan_terms(make_terms(term_months=601))
        assert errors[0].message == "Term cannot exceed 600 months (50 years)"
        assert errors[0].code == ValidationErrorCode.MAX_VALUE_EXCEEDED

    def test_start_date(self):
        errors = validate_loan_terms(make_terms(start_date=None))
        assert fields(errors) == [("start_date", ValidationErrorCode.REQUIRED_FIELD)]

        errors = validate_loan_terms(make_terms(start_date="2024-01-01"))
        assert fields(errors) == [("start_date", ValidationErrorCode.INVALID_DATE)]

    def test_first_payment_date_range(self):
        errors = validate_loan_terms(make_terms(first_payment_date=date(2023, 12, 31)))
        assert fields(errors) == [("first_payment_date", ValidationErrorCode.INVALID_DATE_RANGE)]

        errors = validate_loan_terms(make_terms(first_payment_date=date(2024, 4, 2)))
        assert errors[0].message == "First payment date cannot be more than 3 months after start date"

        assert validate_loan_terms(make_terms(first_payment_date=date(2024, 4, 1))) == []

    def test_balloon(self):
        errors = validate_loan_terms(make_terms(balloon_payment=Decimal('100000')))
        assert fields(errors) == [("balloon_payment", ValidationErrorCode.INVALID_VALUE)]
        assert errors[0].message == "Balloon payment must be less than principal"

        errors = validate_loan_terms(make_terms(balloon_payment=Decimal('-5')))
        assert errors[0].message == "Balloon payment cannot be negative"

        errors = validate_loan_terms(make_terms(balloon_payment=Decimal('20000'),
                                                balloon_payment_date=date(2023, 6, 1)))
        assert fields(errors) == [("balloon_payment_date", ValidationErrorCode.INVALID_DATE_RANGE)]

    def test_missing_options(self):
        errors = validate_loan_terms(make_terms(payment_frequency=None, interest_type=None,
                                                day_count_convention=None))
        assert [e.field for e in errors] == ["payment_frequency", "interest_type",
                                             "day_count_convention"]
        assert {e.code for e in errors} == {ValidationErrorCode.REQUIRED_FIELD}

    def test_all_problems_reported(self):
        """Every failing field is reported in one pass, in field order"""
        terms = make_terms(principal=Decimal('-1'), annual_interest_rate=Decimal('150'),
                           term_months=0)
        errors = validate_loan_terms(terms)

        assert [e.field for e in errors] == ["principal", "annual_interest_rate", "term_months"]
        assert not is_valid_loan_terms(terms)


class TestPrepaymentValidation:
    """Test prepayment checks"""

    def test_valid(self):
        assert validate_prepayment(Decimal('1000'), date(2024, 6, 1),
                                   Decimal('50000'), date(2024, 1, 1)) == []

    def test_amount(self):
        errors = validate_prepayment(Decimal('0'), date(2024, 6, 1), Decimal('50000'), date(2024, 1, 1))
        assert fields(errors) == [("amount", ValidationErrorCode.INVALID_VALUE)]

        errors = validate_prepayment(Decimal('60000'), date(2024, 6, 1), Decimal('50000'), date(2024, 1, 1))
        assert fields(errors) == [("amount", ValidationErrorCode.MAX_VALUE_EXCEEDED)]

    def test_date(self):
        errors = validate_prepayment(Decimal('100'), date(2023, 6, 1), Decimal('50000'), date(2024, 1, 1))
        assert fields(errors) == [("date", ValidationErrorCode.INVALID_DATE_RANGE)]

        errors = validate_prepayment(Decimal('100'), None, Decimal('50000'), date(2024, 1, 1))
        assert fields(errors) == [("date", ValidationErrorCode.INVALID_DATE)]


class TestFormatting:
    """Test human-readable error output"""

    def test_format_errors(self):
        errors = validate_loan_terms(make_terms(principal=Decimal('0'), term_months=0))
        assert format_validation_errors(errors) == (
            "principal: Principal amount must be greater than zero\n"
            "term_months: Term must be greater than zero months"
        )

    def test_format_no_errors(self):
        assert format_validation_errors([]) == ""


class TestConfiguredLimits:
    """Test limits taken from environment configuration"""

    def test_term_limit_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOAN_ENGINE_MAX_TERM_MONTHS", "120")
        reload_config()
        try:
            errors = validate_loan_terms(make_terms(term_months=180))
            assert errors[0].message == "Term cannot exceed 120 months (10 years)"
        finally:
            monkeypatch.delenv("LOAN_ENGINE_MAX_TERM_MONTHS")
            reload_config()

        assert validate_loan_terms(make_terms(term_months=180)) == []
