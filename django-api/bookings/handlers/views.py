"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.domain import CancellationType
from bookings.domain.errors import DomainError, ErrorCode
from bookings.handlers.serializers import (
    BookingInputSerializer,
    BulkCancelInputSerializer,
    BulkResultSerializer,
    OccurrenceCancelInputSerializer,
    OccurrenceCancellationSerializer,
    PaymentOptionSerializer,
    RefundResultSerializer,
    RegistrationCancelInputSerializer,
    RegistrationSerializer,
)
from bookings.services import BookingCoordinator, RefundService, format_waitlist_position
from bookings.stores.django_store import DjangoCommerceStore

ERROR_STATUS = {
    ErrorCode.OCCURRENCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.PAYMENT_INSTRUMENT_INSUFFICIENT: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorCode.ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorCode.OCCURRENCE_NOT_BOOKABLE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_BOOKING_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_APPLICATION: status.HTTP_409_CONFLICT,
    ErrorCode.BACKEND_TRANSACTION_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc: DomainError) -> Response:
    return Response(
        {"code": exc.code.value, "message": exc.message},
        status=ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST),
    )


class CommerceView(APIView):
    """Base view wiring services to the ORM store."""

    store_class = DjangoCommerceStore

    def get_coordinator(self) -> BookingCoordinator:
        return BookingCoordinator(self.store_class())

    def get_refund_service(self) -> RefundService:
        return RefundService(self.store_class())

    def handle_exception(self, exc):
        if isinstance(exc, DomainError):
            return error_response(exc)
        return super().handle_exception(exc)


class PaymentOptionsView(CommerceView):
    """Handler for GET /api/occurrences/{occurrence_id}/payment-options"""

    def get(self, request: Request, occurrence_id: str) -> Response:
        coordinator = self.get_coordinator()
        flow = coordinator.start(occurrence_id)
        flow = coordinator.select_customer(flow, request.query_params.get("customer_id"))
        options = coordinator.payment_options(flow)
        return Response(
            {
                "occurrence_id": str(flow.occurrence.id),
                "price": str(flow.occurrence.price),
                "seats_left": flow.occurrence.seats_left,
                "options": PaymentOptionSerializer(options, many=True).data,
            }
        )


class BookingCreateView(CommerceView):
    """Handler for POST /api/bookings"""

    def post(self, request: Request) -> Response:
        serializer = BookingInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        registration = self.get_coordinator().process_booking(
            data["occurrence_id"],
            data["customer_id"],
            data["payment_method"],
            notes=data["notes"],
            allow_waitlist=data["allow_waitlist"],
        )
        body = RegistrationSerializer(registration).data
        body["waitlist_position"] = format_waitlist_position(registration)
        return Response(body, status=status.HTTP_201_CREATED)


class RegistrationCancelView(CommerceView):
    """Handler for POST /api/registrations/{registration_id}/cancel"""

    def post(self, request: Request, registration_id: str) -> Response:
        serializer = RegistrationCancelInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cancellation_type = CancellationType(serializer.validated_data["cancellation_type"])

        result = self.get_refund_service().cancel_registration(registration_id, cancellation_type)
        return Response(RefundResultSerializer(result).data)


class OccurrenceCancelView(CommerceView):
    """Handler for POST /api/occurrences/{occurrence_id}/cancel"""

    def post(self, request: Request, occurrence_id: str) -> Response:
        serializer = OccurrenceCancelInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_coordinator().cancel_class_occurrence(
            occurrence_id, data["reason"], data["notify_customers"]
        )
        return Response(OccurrenceCancellationSerializer(result).data)


class BulkCancelView(CommerceView):
    """Handler for POST /api/occurrences/bulk-cancel"""

    def post(self, request: Request) -> Response:
        serializer = BulkCancelInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_coordinator().process_bulk_cancellations(
            data["occurrence_ids"], data["reason"], data["notify_customers"]
        )
        return Response(BulkResultSerializer(result).data)
