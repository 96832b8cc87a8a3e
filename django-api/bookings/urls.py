from django.urls import path

from bookings.handlers import (
    BookingCreateView,
    BulkCancelView,
    OccurrenceCancelView,
    PaymentOptionsView,
    RegistrationCancelView,
)

urlpatterns = [
    path("bookings", BookingCreateView.as_view(), name="booking-create"),
    path("occurrences/bulk-cancel", BulkCancelView.as_view(), name="occurrence-bulk-cancel"),
    path(
        "occurrences/<str:occurrence_id>/payment-options",
        PaymentOptionsView.as_view(),
        name="payment-options",
    ),
    path(
        "occurrences/<str:occurrence_id>/cancel",
        OccurrenceCancelView.as_view(),
        name="occurrence-cancel",
    ),
    path(
        "registrations/<str:registration_id>/cancel",
        RegistrationCancelView.as_view(),
        name="registration-cancel",
    ),
]
