"""
Loan Engine

A stateless, deterministic calculation engine for installment loans with
exact Decimal arithmetic, explicit rounding discipline, balloon payment
detection and restructuring, and prepayment recalculation.
"""

__version__ = "1.0.0"

from .engine import (  # noqa: E402
    LoanEngine,
    create_loan_terms,
    validate_loan_terms,
    calculate_payment,
    generate_schedule,
    apply_prepayment,
    calculate_apr,
    detect_balloon_payments,
    apply_split_payment_strategy,
    apply_extend_contract_strategy,
    apply_hybrid_strategy,
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
