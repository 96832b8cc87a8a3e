"""Cancellation refund policy.

Operator-initiated cancellations (instructor, weather, studio) are always a full
cash refund. Customer cancellations are tiered by notice given:

- 24h or more: full cash refund
- 12h to 24h: 50% cash minus processing fee, 50% wallet credit
- 2h to 12h: 100% wallet credit, processing fee recorded
- under 2h: nothing

The processing fee only reduces the cash side and cash never goes below zero.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from bookings.domain.models import CancellationType, RefundBreakdown
from bookings.domain.value_objects import quantize

DEFAULT_PROCESSING_FEE = Decimal("2.50")


@dataclass(frozen=True)
class RefundTier:
    """One row of the customer cancellation table."""

    min_hours: float
    refund_percent: int
    credit_percent: int
    charges_fee: bool

    @property
    def returns_value(self) -> bool:
        return self.refund_percent + self.credit_percent > 0


FULL_REFUND = RefundTier(min_hours=0, refund_percent=100, credit_percent=0, charges_fee=False)

# Ordered by min_hours descending; the first tier whose threshold is met applies.
CUSTOMER_TIERS: tuple[RefundTier, ...] = (
    RefundTier(min_hours=24, refund_percent=100, credit_percent=0, charges_fee=False),
    RefundTier(min_hours=12, refund_percent=50, credit_percent=50, charges_fee=True),
    RefundTier(min_hours=2, refund_percent=0, credit_percent=100, charges_fee=True),
)
NO_REFUND = RefundTier(min_hours=float("-inf"), refund_percent=0, credit_percent=0, charges_fee=False)


def hours_between(starts_at: datetime, now: datetime) -> float:
    if starts_at.tzinfo is None:
        starts_at = starts_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (starts_at - now).total_seconds() / 3600


def select_tier(cancellation_type: CancellationType, hours_until_class: float) -> RefundTier:
    if cancellation_type.is_operator_initiated:
        return FULL_REFUND
    for tier in CUSTOMER_TIERS:
        if hours_until_class >= tier.min_hours:
            return tier
    return NO_REFUND


def calculate_refund(
    original_amount: Decimal,
    starts_at: datetime,
    cancellation_type: CancellationType,
    now: datetime,
    processing_fee: Decimal = DEFAULT_PROCESSING_FEE,
) -> RefundBreakdown:
    """Compute the refund, credit and fee for a cancellation happening at ``now``."""
    hours_until_class = hours_between(starts_at, now)
    tier = select_tier(cancellation_type, hours_until_class)

    fee = quantize(processing_fee) if tier.charges_fee else Decimal("0.00")
    cash = original_amount * tier.refund_percent / 100 - fee
    credit = original_amount * tier.credit_percent / 100

    return RefundBreakdown(
        original_amount=quantize(original_amount),
        refund_amount=quantize(max(Decimal("0"), cash)),
        credit_amount=quantize(credit),
        processing_fee=fee,
        hours_until_class=hours_until_class,
    )
