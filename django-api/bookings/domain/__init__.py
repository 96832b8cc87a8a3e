from bookings.domain.models import (
    BookingRequest,
    BookingStep,
    CancellationEntry,
    CancellationType,
    ClassOccurrence,
    Membership,
    OccurrenceStatus,
    Pass,
    PaymentMethod,
    PaymentOption,
    RefundBreakdown,
    RefundOrder,
    Registration,
    RegistrationStatus,
    Wallet,
)
from bookings.domain.value_objects import (
    Capacity,
    CustomerId,
    Money,
    OccurrenceId,
    OrganizationId,
    PassId,
    RegistrationId,
)

__all__ = [
    "BookingRequest",
    "BookingStep",
    "CancellationEntry",
    "CancellationType",
    "ClassOccurrence",
    "Membership",
    "OccurrenceStatus",
    "Pass",
    "PaymentMethod",
    "PaymentOption",
    "RefundBreakdown",
    "RefundOrder",
    "Registration",
    "RegistrationStatus",
    "Wallet",
    "Capacity",
    "CustomerId",
    "Money",
    "OccurrenceId",
    "OrganizationId",
    "PassId",
    "RegistrationId",
]
