"""Domain models representing persisted and derived commerce state.

These are pure domain objects with no API input rules.
Django ORM models are in bookings/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from bookings.domain.value_objects import (
    Capacity,
    CustomerId,
    Money,
    OccurrenceId,
    OrganizationId,
    PassId,
    RegistrationId,
)


class OccurrenceStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    REFUNDED = "refunded"
    ATTENDED = "attended"

    @property
    def is_terminal(self) -> bool:
        return self in (RegistrationStatus.CANCELLED, RegistrationStatus.REFUNDED)

    @property
    def holds_seat(self) -> bool:
        return self in (RegistrationStatus.CONFIRMED, RegistrationStatus.PENDING)


class PaymentMethod(str, Enum):
    MEMBERSHIP = "membership"
    WALLET = "wallet"
    PASS = "pass"
    TWINT = "twint"
    CARD = "card"


class CancellationType(str, Enum):
    INSTRUCTOR = "instructor_cancellation"
    WEATHER = "weather_cancellation"
    STUDIO = "studio_cancellation"
    CUSTOMER = "customer_cancellation"

    @property
    def is_operator_initiated(self) -> bool:
        return self is not CancellationType.CUSTOMER


class BookingStep(str, Enum):
    SLOT_SELECTED = "slot_selected"
    CUSTOMER_SELECTED = "customer_selected"
    PAYMENT_METHOD_CHOSEN = "payment_method_chosen"
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"


@dataclass(frozen=True)
class ClassOccurrence:
    """Domain representation of one scheduled class session."""

    id: OccurrenceId
    org_id: OrganizationId
    name: str
    class_type: str
    starts_at: datetime
    ends_at: datetime
    capacity: Capacity
    booked_count: int
    waitlist_count: int
    price: Money
    status: OccurrenceStatus = OccurrenceStatus.SCHEDULED
    cancellation_reason: str = ""

    @property
    def seats_left(self) -> int:
        return max(0, self.capacity.value - self.booked_count)

    @property
    def is_full(self) -> bool:
        return self.seats_left == 0


@dataclass(frozen=True)
class Registration:
    """Domain representation of a customer's claim on one occurrence."""

    id: RegistrationId
    org_id: OrganizationId
    customer_id: CustomerId
    occurrence_id: OccurrenceId
    status: RegistrationStatus
    payment_method: PaymentMethod
    amount_paid: Money
    booked_at: datetime
    cancelled_at: datetime | None = None
    pass_id: PassId | None = None
    notes: str = ""
    waitlist_priority: int | None = None
    auto_promote: bool = False


@dataclass(frozen=True)
class Wallet:
    """Per-customer, per-organization cash-equivalent balance."""

    customer_id: CustomerId
    org_id: OrganizationId
    balance: Money
    currency: str
    is_active: bool = True


@dataclass(frozen=True)
class Pass:
    """Prepaid bundle of class credits with a validity window."""

    id: PassId
    customer_id: CustomerId
    org_id: OrganizationId
    name: str
    credits_total: int
    credits_used: int
    valid_from: datetime
    valid_until: datetime | None
    is_active: bool = True
    class_types: tuple[str, ...] = ()

    @property
    def remaining_credits(self) -> int:
        return max(0, self.credits_total - self.credits_used)

    def is_usable_for(self, occurrence: ClassOccurrence, at: datetime) -> bool:
        if not self.is_active or self.remaining_credits <= 0:
            return False
        if at < self.valid_from:
            return False
        if self.valid_until is not None and at > self.valid_until:
            return False
        return not self.class_types or occurrence.class_type in self.class_types


@dataclass(frozen=True)
class Membership:
    """Recurring membership granting access to some class types."""

    customer_id: CustomerId
    org_id: OrganizationId
    name: str
    valid_until: datetime | None
    is_active: bool = True
    class_types: tuple[str, ...] = ()

    def covers(self, occurrence: ClassOccurrence, at: datetime) -> bool:
        if not self.is_active:
            return False
        if self.valid_until is not None and at > self.valid_until:
            return False
        return not self.class_types or occurrence.class_type in self.class_types


@dataclass(frozen=True)
class RefundOrder:
    """Compensating negative-amount order recorded for a cash refund."""

    registration_id: RegistrationId
    customer_id: CustomerId
    org_id: OrganizationId
    amount: Decimal
    currency: str
    notes: str
    created_at: datetime


@dataclass(frozen=True)
class RefundBreakdown:
    """Derived refund decision. Recomputed on every call, never persisted."""

    original_amount: Decimal
    refund_amount: Decimal
    credit_amount: Decimal
    processing_fee: Decimal
    hours_until_class: float


@dataclass(frozen=True)
class PaymentOption:
    """One payment instrument the customer may pick for a booking."""

    method: PaymentMethod
    label: str
    pass_id: PassId | None = None
    available_balance: Money | None = None
    remaining_credits: int | None = None

    @property
    def key(self) -> str:
        if self.pass_id is not None:
            return f"{self.method.value}-{self.pass_id}"
        return self.method.value


@dataclass(frozen=True)
class BookingRequest:
    """Input of the atomic booking transaction."""

    occurrence_id: OccurrenceId
    customer_id: CustomerId
    org_id: OrganizationId
    payment_method: PaymentMethod
    amount: Money
    pass_id: PassId | None = None
    notes: str = ""
    allow_waitlist: bool = True


@dataclass(frozen=True)
class CancellationEntry:
    """Everything the store needs to apply one cancellation atomically."""

    registration_id: RegistrationId
    cancellation_type: CancellationType
    breakdown: RefundBreakdown
    credit_reason: str
    restore_pass_credit: bool = False
