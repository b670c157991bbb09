"""
Balloon Strategy Module

Restructures a schedule that carries a balloon payment. Strategies are a
closed set of variants, each carrying its own configuration:

- AllowBalloon: keep the balloon as scheduled
- SplitPayments: spread the excess over the payments just before it
- ExtendContract: lengthen the term until the balloon amortizes away
- Hybrid: choose by the size of the excess

A strategy that cannot be applied returns success=False with a message; it
never raises for loan data.
"""

from decimal import Decimal
from dataclasses import dataclass, field, replace
from typing import ClassVar, List, Optional, Tuple, Union
from enum import Enum
import logging

from .rounding import DecimalLike, round_money, to_decimal, ZERO, ONE, HUNDRED
from .models import LoanTerms, ScheduledPayment, AmortizationSchedule
from .balloon import BalloonDetectionResult, balloon_excess_amount
from .amortization import generate_amortization_schedule
from .exceptions import UnsupportedBalloonStrategy


logger = logging.getLogger("loan_engine.balloon_strategies")


class BalloonStrategy(Enum):
    ALLOW_BALLOON = "ALLOW_BALLOON"
    SPLIT_PAYMENTS = "SPLIT_PAYMENTS"
    EXTEND_CONTRACT = "EXTEND_CONTRACT"
    HYBRID = "HYBRID"


class DistributionMethod(Enum):
    """How a split amount is shared between payments"""
    EQUAL = "EQUAL"            # Same share for every payment
    GRADUATED = "GRADUATED"    # Ramps from 0.5x to 1.5x of the equal share


@dataclass(frozen=True)
class SplitPaymentConfig:
    number_of_payments: int = 3
    distribution_method: DistributionMethod = DistributionMethod.EQUAL
    max_payment_increase: Decimal = Decimal('0.25')  # 0.25 = 25% per payment

    def __post_init__(self):
        object.__setattr__(self, 'max_payment_increase', to_decimal(self.max_payment_increase))
        if not isinstance(self.distribution_method, DistributionMethod):
            object.__setattr__(self, 'distribution_method',
                               DistributionMethod(str(self.distribution_method).upper()))


@dataclass(frozen=True)
class ExtendContractConfig:
    max_extension_months: int = 12
    target_payment_increase: Decimal = Decimal('0.1')  # 0.1 = 10% above regular
    requires_approval: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'target_payment_increase', to_decimal(self.target_payment_increase))


@dataclass(frozen=True)
class HybridStrategyConfig:
    """Excess at or below the small threshold splits; at or above the large one extends"""
    small_balloon_threshold: Decimal
    large_balloon_threshold: Decimal
    split_config: SplitPaymentConfig = field(default_factory=SplitPaymentConfig)
    extend_config: ExtendContractConfig = field(default_factory=ExtendContractConfig)

    def __post_init__(self):
        object.__setattr__(self, 'small_balloon_threshold', to_decimal(self.small_balloon_threshold))
        object.__setattr__(self, 'large_balloon_threshold', to_decimal(self.large_balloon_threshold))


@dataclass(frozen=True)
class AllowBalloon:
    strategy: ClassVar[BalloonStrategy] = BalloonStrategy.ALLOW_BALLOON


@dataclass(frozen=True)
class SplitPayments:
    config: SplitPaymentConfig = field(default_factory=SplitPaymentConfig)
    strategy: ClassVar[BalloonStrategy] = BalloonStrategy.SPLIT_PAYMENTS


@dataclass(frozen=True)
class ExtendContract:
    config: ExtendContractConfig = field(default_factory=ExtendContractConfig)
    strategy: ClassVar[BalloonStrategy] = BalloonStrategy.EXTEND_CONTRACT


@dataclass(frozen=True)
class Hybrid:
    config: HybridStrategyConfig
    strategy: ClassVar[BalloonStrategy] = BalloonStrategy.HYBRID


BalloonStrategyConfig = Union[AllowBalloon, SplitPayments, ExtendContract, Hybrid]


@dataclass(frozen=True)
class BalloonStrategyResult:
    """Outcome of applying a balloon strategy"""
    strategy: BalloonStrategy
    success: bool
    message: str
    modified_schedule: Optional[AmortizationSchedule] = None
    new_terms: Optional[LoanTerms] = None
    warnings: Tuple[str, ...] = ()
    requires_borrower_choice: bool = False


def _failure(strategy: BalloonStrategy, message: str) -> BalloonStrategyResult:
    logger.warning("%s strategy rejected: %s", strategy.value, message)
    return BalloonStrategyResult(strategy=strategy, success=False, message=message)


def _find_payment_index(schedule: AmortizationSchedule, payment_number: int) -> Optional[int]:
    for index, payment in enumerate(schedule.payments):
        if payment.payment_number == payment_number:
            return index
    return None


def calculate_distribution(
    amount: DecimalLike,
    number_of_payments: int,
    method: DistributionMethod,
    rounding_config=None
) -> List[Decimal]:
    """
    Split an amount into rounded shares that sum exactly to the amount

    Graduated shares are the equal share scaled by 0.5 + i / (n - 1), so the
    first payment carries half a share and the last one and a half. Any
    rounding residual is added to the last share.
    """
    amount = to_decimal(amount)
    equal_share = amount / number_of_payments

    if method is DistributionMethod.GRADUATED and number_of_payments > 1:
        raw_shares = [
            equal_share * (Decimal('0.5') + Decimal(i) / (number_of_payments - 1))
            for i in range(number_of_payments)
        ]
    else:
        raw_shares = [equal_share] * number_of_payments

    shares = [round_money(share, rounding_config) for share in raw_shares]
    shares[-1] += amount - sum(shares, ZERO)
    return shares


def _rebuild_running_totals(payments: List[ScheduledPayment],
                            start_index: int) -> List[ScheduledPayment]:
    """Recompute balances and cumulative figures from start_index onwards"""
    rebuilt = list(payments[:start_index])
    if rebuilt:
        balance = rebuilt[-1].ending_balance
        cumulative_interest = rebuilt[-1].cumulative_interest
        cumulative_principal = rebuilt[-1].cumulative_principal
    else:
        balance = payments[0].beginning_balance
        cumulative_interest = ZERO
        cumulative_principal = ZERO

    for payment in payments[start_index:]:
        cumulative_interest += payment.interest
        cumulative_principal += payment.principal
        rebuilt.append(replace(
            payment,
            total_payment=payment.principal + payment.interest,
            beginning_balance=balance,
            ending_balance=balance - payment.principal,
            cumulative_interest=cumulative_interest,
            cumulative_principal=cumulative_principal
        ))
        balance = balance - payment.principal

    return rebuilt


def apply_split_payment_strategy(
    schedule: AmortizationSchedule,
    balloon: BalloonDetectionResult,
    config: SplitPaymentConfig,
    terms: LoanTerms
) -> BalloonStrategyResult:
    """
    Spread the balloon's excess over the payments immediately before it

    Up to config.number_of_payments preceding payments absorb the excess as
    extra principal and the balloon's principal shrinks by the same total.
    Fails when fewer than two payments precede the balloon or when any
    payment would grow by more than config.max_payment_increase.
    """
    strategy = BalloonStrategy.SPLIT_PAYMENTS
    if not balloon.detected or balloon.payment is None:
        return _failure(strategy, "No balloon payment detected")

    balloon_index = _find_payment_index(schedule, balloon.payment.payment_number)
    if balloon_index is None:
        return _failure(strategy, "Balloon payment not found in schedule")

    available = min(config.number_of_payments, balloon_index)
    if available < 2:
        return _failure(strategy, "Not enough payments available to split balloon amount")

    excess = balloon_excess_amount(balloon)
    shares = calculate_distribution(
        excess, available, config.distribution_method, terms.rounding_config
    )

    first_index = balloon_index - available
    payments = list(schedule.payments)

    for offset, share in enumerate(shares):
        current_total = payments[first_index + offset].total_payment
        if current_total <= 0 or share / current_total > config.max_payment_increase:
            return _failure(
                strategy, "Cannot distribute balloon amount within payment increase limits"
            )

    for offset, share in enumerate(shares):
        payment = payments[first_index + offset]
        payments[first_index + offset] = replace(
            payment,
            principal=payment.principal + share,
            total_payment=payment.total_payment + share
        )

    balloon_row = payments[balloon_index]
    total_distributed = sum(shares, ZERO)
    payments[balloon_index] = replace(
        balloon_row,
        principal=balloon_row.principal - total_distributed,
        total_payment=balloon_row.total_payment - total_distributed
    )

    modified = replace(schedule, payments=tuple(_rebuild_running_totals(payments, first_index)))
    logger.debug("Split balloon excess %s across %d payments", excess, available)

    return BalloonStrategyResult(
        strategy=strategy,
        success=True,
        message=f"Balloon payment of ${excess} distributed across {available} payments",
        modified_schedule=modified
    )


def apply_extend_contract_strategy(
    schedule: AmortizationSchedule,
    balloon: BalloonDetectionResult,
    config: ExtendContractConfig,
    terms: LoanTerms
) -> BalloonStrategyResult:
    """
    Extend the loan term until the balloon amount is paid off

    The balloon amount is amortized month by month at the regular payment
    raised by config.target_payment_increase. On success the whole schedule
    is regenerated with the longer term and no balloon.
    """
    strategy = BalloonStrategy.EXTEND_CONTRACT
    if not balloon.detected or balloon.payment is None:
        return _failure(strategy, "No balloon payment detected")

    if _find_payment_index(schedule, balloon.payment.payment_number) is None:
        return _failure(strategy, "Balloon payment not found in schedule")

    balance = balloon.payment.amount
    target_payment = balloon.payment.regular_payment_amount * (ONE + config.target_payment_increase)
    monthly_rate = terms.annual_interest_rate / 12 / HUNDRED

    extension_months = 0
    while balance > 0 and extension_months < config.max_extension_months:
        extension_months += 1
        principal = target_payment - balance * monthly_rate
        if principal <= 0:
            return _failure(
                strategy, "Target payment too low to cover interest on remaining balance"
            )
        balance -= principal

    if balance > 0:
        return _failure(
            strategy,
            f"Cannot pay off balance within maximum extension of "
            f"{config.max_extension_months} months"
        )

    new_terms = terms.with_changes(
        term_months=terms.term_months + extension_months,
        balloon_payment=None,
        balloon_payment_date=None
    )
    modified = generate_amortization_schedule(new_terms)

    warnings = ("This extension requires underwriting approval",) if config.requires_approval else ()
    return BalloonStrategyResult(
        strategy=strategy,
        success=True,
        message=f"Loan term extended by {extension_months} months to eliminate balloon payment",
        modified_schedule=modified,
        new_terms=new_terms,
        warnings=warnings
    )


def apply_hybrid_strategy(
    schedule: AmortizationSchedule,
    balloon: BalloonDetectionResult,
    config: HybridStrategyConfig,
    terms: LoanTerms
) -> BalloonStrategyResult:
    """Split small balloons, extend large ones, and leave the rest to the borrower"""
    if not balloon.detected or balloon.payment is None:
        return _failure(BalloonStrategy.HYBRID, "No balloon payment detected")

    excess = balloon_excess_amount(balloon)
    if excess <= config.small_balloon_threshold:
        return apply_split_payment_strategy(schedule, balloon, config.split_config, terms)
    if excess >= config.large_balloon_threshold:
        return apply_extend_contract_strategy(schedule, balloon, config.extend_config, terms)

    return BalloonStrategyResult(
        strategy=BalloonStrategy.HYBRID,
        success=True,
        message=(f"Balloon amount of ${excess} requires borrower choice "
                 f"between payment split or term extension"),
        warnings=("Borrower must select preferred restructuring option",),
        requires_borrower_choice=True
    )


def apply_balloon_strategy(
    schedule: AmortizationSchedule,
    balloon: BalloonDetectionResult,
    strategy_config: BalloonStrategyConfig,
    terms: LoanTerms
) -> BalloonStrategyResult:
    """Apply whichever strategy variant is given"""
    if isinstance(strategy_config, AllowBalloon):
        return BalloonStrategyResult(
            strategy=BalloonStrategy.ALLOW_BALLOON,
            success=True,
            message="Balloon payment kept as scheduled",
            modified_schedule=schedule
        )
    if isinstance(strategy_config, SplitPayments):
        return apply_split_payment_strategy(schedule, balloon, strategy_config.config, terms)
    if isinstance(strategy_config, ExtendContract):
        return apply_extend_contract_strategy(schedule, balloon, strategy_config.config, terms)
    if isinstance(strategy_config, Hybrid):
        return apply_hybrid_strategy(schedule, balloon, strategy_config.config, terms)
    raise UnsupportedBalloonStrategy(strategy_config)
