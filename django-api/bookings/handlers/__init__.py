from bookings.handlers.views import (
    BookingCreateView,
    BulkCancelView,
    OccurrenceCancelView,
    PaymentOptionsView,
    RegistrationCancelView,
)

__all__ = [
    "BookingCreateView",
    "BulkCancelView",
    "OccurrenceCancelView",
    "PaymentOptionsView",
    "RegistrationCancelView",
]
