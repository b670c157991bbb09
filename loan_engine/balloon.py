"""
Balloon Payment Detection Module

Flags scheduled payments that are materially larger than the loan's regular
payment, checks detected balloons against system-wide and regional
compliance rules, and works out when borrowers must be notified.

Compliance checks only report violations; they never block a calculation.
"""

from decimal import Decimal
from datetime import date, timedelta
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple
from enum import Enum
import logging
import statistics

from .rounding import DecimalLike, round_money, to_decimal, ZERO, HUNDRED
from .models import AmortizationSchedule


logger = logging.getLogger("loan_engine.balloon")


class ThresholdLogic(Enum):
    """How the percentage and absolute thresholds combine"""
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class BalloonDetectionConfig:
    """Thresholds above the regular payment at which a payment is a balloon"""
    enabled: bool = True
    percentage_threshold: Decimal = Decimal('50')   # 50 = 50% above regular
    absolute_threshold: Decimal = Decimal('500')    # currency units above regular
    threshold_logic: ThresholdLogic = ThresholdLogic.OR

    def __post_init__(self):
        object.__setattr__(self, 'percentage_threshold', to_decimal(self.percentage_threshold))
        object.__setattr__(self, 'absolute_threshold', to_decimal(self.absolute_threshold))
        if not isinstance(self.threshold_logic, ThresholdLogic):
            object.__setattr__(self, 'threshold_logic',
                               ThresholdLogic(str(self.threshold_logic).upper()))


@dataclass(frozen=True)
class BalloonPaymentInfo:
    payment_number: int
    due_date: date
    amount: Decimal
    regular_payment_amount: Decimal


@dataclass(frozen=True)
class BalloonExcess:
    percentage: Decimal
    absolute: Decimal


@dataclass(frozen=True)
class ThresholdMatch:
    percentage: bool
    absolute: bool
    combined: bool


@dataclass(frozen=True)
class BalloonPaymentCheck:
    """Outcome of testing one payment against a regular payment"""
    is_balloon: bool
    exceeds_by: BalloonExcess
    meets_percentage: bool = False
    meets_absolute: bool = False


@dataclass(frozen=True)
class BalloonDetectionResult:
    """A payment flagged as a balloon"""
    detected: bool
    payment: Optional[BalloonPaymentInfo] = None
    exceeds_regular_by: Optional[BalloonExcess] = None
    meets_threshold: Optional[ThresholdMatch] = None


@dataclass(frozen=True)
class RegionalBalloonRules:
    """Per-region overrides; None means the region sets no limit"""
    max_balloon_percentage: Optional[Decimal] = None
    max_balloon_amount: Optional[Decimal] = None
    requires_written_consent: bool = False
    prohibited_loan_types: Tuple[str, ...] = ()
    min_notification_days: int = 0


@dataclass(frozen=True)
class SystemBalloonDefaults:
    """System-wide balloon defaults and compliance limits"""
    default_percentage_threshold: Decimal = Decimal('50')
    default_absolute_threshold: Decimal = Decimal('500')
    default_threshold_logic: ThresholdLogic = ThresholdLogic.OR
    default_strategy: str = "ALLOW_BALLOON"
    max_balloon_percentage: Decimal = Decimal('200')
    max_extension_months: int = 24
    regional_overrides: Mapping[str, RegionalBalloonRules] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only view over a private copy
        object.__setattr__(self, 'regional_overrides',
                           MappingProxyType(dict(self.regional_overrides)))

    def rules_for(self, region: Optional[str]) -> Optional[RegionalBalloonRules]:
        if not region:
            return None
        return self.regional_overrides.get(region)

    def detection_config(self) -> BalloonDetectionConfig:
        """Detection config built from the default thresholds"""
        return BalloonDetectionConfig(
            enabled=True,
            percentage_threshold=self.default_percentage_threshold,
            absolute_threshold=self.default_absolute_threshold,
            threshold_logic=self.default_threshold_logic
        )


@dataclass(frozen=True)
class ComplianceCheck:
    compliant: bool
    violations: Tuple[str, ...] = ()


DEFAULT_BALLOON_CONFIG = SystemBalloonDefaults(
    regional_overrides={
        "CA": RegionalBalloonRules(
            max_balloon_percentage=Decimal('150'),
            min_notification_days=90
        ),
        "NY": RegionalBalloonRules(
            requires_written_consent=True,
            max_balloon_amount=Decimal('50000')
        ),
        "TX": RegionalBalloonRules(
            prohibited_loan_types=("HOME_EQUITY",),
            max_balloon_percentage=Decimal('100')
        ),
    }
)


def is_payment_balloon(
    payment: DecimalLike,
    regular_payment: DecimalLike,
    config: BalloonDetectionConfig
) -> BalloonPaymentCheck:
    """
    Test whether a payment qualifies as a balloon

    The excess over the regular payment is measured in absolute terms and
    as a percentage of the regular payment (0 when the regular payment is
    zero). Thresholds are compared against the unrounded measures; only the
    reported excess is rounded.
    """
    payment = to_decimal(payment)
    regular_payment = to_decimal(regular_payment)

    absolute_excess = payment - regular_payment
    if regular_payment > 0:
        percentage_excess = absolute_excess / regular_payment * HUNDRED
    else:
        percentage_excess = ZERO

    meets_percentage = percentage_excess >= config.percentage_threshold
    meets_absolute = absolute_excess >= config.absolute_threshold

    if config.threshold_logic is ThresholdLogic.OR:
        is_balloon = meets_percentage or meets_absolute
    else:
        is_balloon = meets_percentage and meets_absolute

    return BalloonPaymentCheck(
        is_balloon=is_balloon,
        exceeds_by=BalloonExcess(
            percentage=round_money(percentage_excess),
            absolute=round_money(absolute_excess)
        ),
        meets_percentage=meets_percentage,
        meets_absolute=meets_absolute
    )


def regular_payment_baseline(schedule: AmortizationSchedule) -> Optional[Decimal]:
    """
    Median of all non-zero payment amounts, or None if every payment is zero

    An even count averages the two middle amounts, so the median is rounded
    with the loan's rounding config to stay a payable amount.
    """
    amounts = [
        p.principal + p.interest
        for p in schedule.payments
        if p.principal > 0 or p.interest > 0
    ]
    if not amounts:
        return None
    return round_money(statistics.median(amounts), schedule.loan_terms.rounding_config)


def detect_balloon_payments(
    schedule: AmortizationSchedule,
    config: BalloonDetectionConfig
) -> List[BalloonDetectionResult]:
    """
    Find balloon payments in a schedule

    Every payment is compared with the median payment. Returns one result
    per flagged payment in schedule order; a disabled config or an empty
    schedule yields an empty list.
    """
    if not config.enabled or not schedule.payments:
        return []

    regular_payment = regular_payment_baseline(schedule)
    if regular_payment is None:
        return []

    results = []
    for payment in schedule.payments:
        amount = payment.principal + payment.interest
        check = is_payment_balloon(amount, regular_payment, config)
        if not check.is_balloon:
            continue

        results.append(BalloonDetectionResult(
            detected=True,
            payment=BalloonPaymentInfo(
                payment_number=payment.payment_number,
                due_date=payment.due_date,
                amount=amount,
                regular_payment_amount=regular_payment
            ),
            exceeds_regular_by=check.exceeds_by,
            meets_threshold=ThresholdMatch(
                percentage=check.meets_percentage,
                absolute=check.meets_absolute,
                combined=True
            )
        ))

    if results:
        logger.debug("Detected %d balloon payment(s) against regular payment %s",
                     len(results), regular_payment)
    return results


def find_largest_balloon_payment(
    schedule: AmortizationSchedule,
    config: BalloonDetectionConfig
) -> Optional[BalloonDetectionResult]:
    """Detected balloon with the largest absolute excess (first wins ties)"""
    largest = None
    for result in detect_balloon_payments(schedule, config):
        if largest is None or result.exceeds_regular_by.absolute > largest.exceeds_regular_by.absolute:
            largest = result
    return largest


def _format_amount(amount: Decimal) -> str:
    # Whole amounts print without a fractional part, e.g. $50000
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal('1')))
    return str(amount.normalize())


def validate_balloon_compliance(
    balloon: BalloonDetectionResult,
    region: Optional[str],
    loan_type: str,
    system_defaults: SystemBalloonDefaults = DEFAULT_BALLOON_CONFIG,
    notification_days: Optional[Sequence[int]] = None,
    has_written_consent: Optional[bool] = None
) -> ComplianceCheck:
    """
    Check a detected balloon against compliance limits

    Violations are reported in a fixed order: system maximum percentage,
    region maximum percentage, region maximum amount, prohibited loan type,
    then (when the caller supplies them) notification lead time and written
    consent.
    """
    if not balloon.detected or balloon.payment is None or balloon.exceeds_regular_by is None:
        return ComplianceCheck(compliant=True)

    violations = []
    excess_percentage = balloon.exceeds_regular_by.percentage

    if excess_percentage > system_defaults.max_balloon_percentage:
        violations.append(
            "Balloon payment exceeds maximum allowed percentage of "
            f"{_format_amount(system_defaults.max_balloon_percentage)}%"
        )

    rules = system_defaults.rules_for(region)
    if rules is not None:
        if (rules.max_balloon_percentage is not None
                and excess_percentage > rules.max_balloon_percentage):
            violations.append(
                f"Balloon payment exceeds {region} maximum of "
                f"{_format_amount(rules.max_balloon_percentage)}%"
            )

        if (rules.max_balloon_amount is not None
                and balloon.payment.amount > rules.max_balloon_amount):
            violations.append(
                f"Balloon payment exceeds {region} maximum amount of "
                f"${_format_amount(rules.max_balloon_amount)}"
            )

        if loan_type in rules.prohibited_loan_types:
            violations.append(
                f"Balloon payments are prohibited for {loan_type} loans in {region}"
            )

        if (notification_days is not None and rules.min_notification_days > 0
                and not any(days >= rules.min_notification_days for days in notification_days)):
            violations.append(
                f"Balloon notification must be sent at least "
                f"{rules.min_notification_days} days in advance in {region}"
            )

        if rules.requires_written_consent and has_written_consent is False:
            violations.append(
                f"Written borrower consent is required for balloon payments in {region}"
            )

    if violations:
        logger.warning("Balloon payment %d has %d compliance violation(s)",
                       balloon.payment.payment_number, len(violations))

    return ComplianceCheck(compliant=not violations, violations=tuple(violations))


def calculate_balloon_notification_schedule(
    balloon_date: date,
    notification_days: Sequence[int],
    region: Optional[str] = None,
    system_defaults: SystemBalloonDefaults = DEFAULT_BALLOON_CONFIG
) -> List[date]:
    """
    Dates on which the borrower should be notified of an upcoming balloon

    Each lead time is subtracted from the balloon date. When the region
    requires a minimum lead time that none of the requested ones meets, the
    minimum is added. Non-positive lead times are ignored. Dates are returned
    earliest first.
    """
    rules = system_defaults.rules_for(region)
    min_days = rules.min_notification_days if rules is not None else 0

    effective_days = list(notification_days)
    if min_days > 0 and not any(days >= min_days for days in effective_days):
        effective_days.append(min_days)

    return sorted(
        balloon_date - timedelta(days=days)
        for days in effective_days
        if days > 0
    )


def balloon_excess_amount(balloon: BalloonDetectionResult) -> Decimal:
    """Absolute excess of a detected balloon over the regular payment"""
    if balloon.exceeds_regular_by is None:
        return ZERO
    return balloon.exceeds_regular_by.absolute
