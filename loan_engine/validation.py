"""
Validation Module

Checks loan terms and prepayments for user-correctable problems. Every
problem found is returned as a ValidationError so callers can show them all
at once; nothing here raises for bad loan data.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional

from .rounding import to_decimal
from .day_count import add_months
from .models import LoanTerms, ValidationError, ValidationErrorCode
from .config import get_config


def _error(field: str, message: str, code: ValidationErrorCode) -> ValidationError:
    return ValidationError(field=field, message=message, code=code)


def _validate_principal(terms: LoanTerms, max_principal: Decimal) -> List[ValidationError]:
    if terms.principal is None:
        return [_error("principal", "Principal amount is required",
                       ValidationErrorCode.REQUIRED_FIELD)]
    if terms.principal <= 0:
        return [_error("principal", "Principal amount must be greater than zero",
                       ValidationErrorCode.INVALID_VALUE)]
    if terms.principal > max_principal:
        return [_error("principal", "Principal amount exceeds maximum allowed value",
                       ValidationErrorCode.MAX_VALUE_EXCEEDED)]
    return []


def _validate_rate(terms: LoanTerms, max_rate: Decimal) -> List[ValidationError]:
    if terms.annual_interest_rate is None:
        return [_error("annual_interest_rate", "Annual interest rate is required",
                       ValidationErrorCode.REQUIRED_FIELD)]
    if terms.annual_interest_rate < 0:
        return [_error("annual_interest_rate", "Annual interest rate cannot be negative",
                       ValidationErrorCode.INVALID_VALUE)]
    if terms.annual_interest_rate > max_rate:
        return [_error("annual_interest_rate",
                       f"Annual interest rate cannot exceed {max_rate}%",
                       ValidationErrorCode.MAX_VALUE_EXCEEDED)]
    return []


def _validate_term(terms: LoanTerms, max_term_months: int) -> List[ValidationError]:
    if terms.term_months is None or terms.term_months <= 0:
        return [_error("term_months", "Term must be greater than zero months",
                       ValidationErrorCode.INVALID_VALUE)]
    if terms.term_months > max_term_months:
        return [_error("term_months",
                       f"Term cannot exceed {max_term_months} months ({max_term_months // 12} years)",
                       ValidationErrorCode.MAX_VALUE_EXCEEDED)]
    return []


def _validate_dates(terms: LoanTerms, max_offset_months: int) -> List[ValidationError]:
    errors = []
    start_date = terms.start_date
    start_ok = isinstance(start_date, date)

    if start_date is None:
        errors.append(_error("start_date", "Start date is required",
                             ValidationErrorCode.REQUIRED_FIELD))
    elif not start_ok:
        errors.append(_error("start_date", "Start date is invalid",
                             ValidationErrorCode.INVALID_DATE))

    first_payment = terms.first_payment_date
    if first_payment is not None:
        if not isinstance(first_payment, date):
            errors.append(_error("first_payment_date", "First payment date is invalid",
                                 ValidationErrorCode.INVALID_DATE))
        elif start_ok and first_payment < start_date:
            errors.append(_error("first_payment_date",
                                 "First payment date cannot be before start date",
                                 ValidationErrorCode.INVALID_DATE_RANGE))
        elif start_ok and first_payment > add_months(start_date, max_offset_months):
            errors.append(_error("first_payment_date",
                                 f"First payment date cannot be more than {max_offset_months} "
                                 f"months after start date",
                                 ValidationErrorCode.INVALID_DATE_RANGE))
    return errors


def _validate_balloon(terms: LoanTerms) -> List[ValidationError]:
    errors = []
    if not terms.balloon_payment:
        return errors

    if terms.balloon_payment < 0:
        errors.append(_error("balloon_payment", "Balloon payment cannot be negative",
                             ValidationErrorCode.INVALID_VALUE))
    elif terms.principal is not None and terms.balloon_payment >= terms.principal:
        errors.append(_error("balloon_payment", "Balloon payment must be less than principal",
                             ValidationErrorCode.INVALID_VALUE))

    balloon_date = terms.balloon_payment_date
    if balloon_date is not None:
        if not isinstance(balloon_date, date):
            errors.append(_error("balloon_payment_date", "Balloon payment date is invalid",
                                 ValidationErrorCode.INVALID_DATE))
        elif isinstance(terms.start_date, date) and balloon_date < terms.start_date:
            errors.append(_error("balloon_payment_date",
                                 "Balloon payment date cannot be before start date",
                                 ValidationErrorCode.INVALID_DATE_RANGE))
    return errors


def validate_loan_terms(terms: LoanTerms) -> List[ValidationError]:
    """
    Validate loan terms

    Args:
        terms: Loan terms to check

    Returns:
        List of ValidationError, empty when the terms are valid
    """
    settings = get_config()
    errors = []
    errors.extend(_validate_principal(terms, to_decimal(settings.max_principal)))
    errors.extend(_validate_rate(terms, to_decimal(settings.max_annual_rate)))
    errors.extend(_validate_term(terms, settings.max_term_months))
    errors.extend(_validate_dates(terms, settings.max_first_payment_offset_months))
    errors.extend(_validate_balloon(terms))

    if terms.payment_frequency is None:
        errors.append(_error("payment_frequency", "Payment frequency is required",
                             ValidationErrorCode.REQUIRED_FIELD))
    if terms.interest_type is None:
        errors.append(_error("interest_type", "Interest type is required",
                             ValidationErrorCode.REQUIRED_FIELD))
    if terms.day_count_convention is None:
        errors.append(_error("day_count_convention", "Day count convention is required",
                             ValidationErrorCode.REQUIRED_FIELD))

    return errors


def validate_prepayment(
    amount: Optional[Decimal],
    prepayment_date: Optional[date],
    current_balance: Decimal,
    loan_start_date: date
) -> List[ValidationError]:
    """Validate an extra payment against the current balance and loan start"""
    errors = []

    if amount is None or to_decimal(amount) <= 0:
        errors.append(_error("amount", "Prepayment amount must be greater than zero",
                             ValidationErrorCode.INVALID_VALUE))
    elif to_decimal(amount) > to_decimal(current_balance):
        errors.append(_error("amount", "Prepayment amount cannot exceed current balance",
                             ValidationErrorCode.MAX_VALUE_EXCEEDED))

    if not isinstance(prepayment_date, date):
        errors.append(_error("date", "Prepayment date is invalid",
                             ValidationErrorCode.INVALID_DATE))
    elif prepayment_date < loan_start_date:
        errors.append(_error("date", "Prepayment date cannot be before loan start date",
                             ValidationErrorCode.INVALID_DATE_RANGE))

    return errors


def is_valid_loan_terms(terms: LoanTerms) -> bool:
    return not validate_loan_terms(terms)


def format_validation_errors(errors: List[ValidationError]) -> str:
    """One "field: message" line per error"""
    return "\n".join(f"{error.field}: {error.message}" for error in errors)
