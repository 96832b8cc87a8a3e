from bookings.services.booking_service import BookingCoordinator, BookingFlow, format_waitlist_position
from bookings.services.refund_service import RefundService
from bookings.services.results import BulkResult, ItemFailure, OccurrenceCancellationResult, RefundResult

__all__ = [
    "BookingCoordinator",
    "BookingFlow",
    "BulkResult",
    "ItemFailure",
    "OccurrenceCancellationResult",
    "RefundResult",
    "RefundService",
    "format_waitlist_position",
]
