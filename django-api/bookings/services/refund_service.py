"""Refund service - applies the cancellation policy to registrations.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

The refund calculation is pure. Its application (status change, wallet credit,
refund order) is handed to the store as one atomic unit keyed by registration id,
so retrying a cancellation never credits twice.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from bookings.conf import commerce_settings
from bookings.domain import (
    CancellationEntry,
    CancellationType,
    ClassOccurrence,
    RefundBreakdown,
    Registration,
    RegistrationId,
)
from bookings.domain.errors import (
    DuplicateApplicationError,
    InvalidIdError,
    OccurrenceNotFoundError,
    RegistrationNotFoundError,
)
from bookings.domain.policy import calculate_refund, select_tier
from bookings.services.results import BulkResult, ItemFailure, RefundResult
from bookings.stores.interfaces import CommerceStore

logger = logging.getLogger(__name__)


def parse_id(id_type, value, field: str = "id"):
    """Build a typed identifier, raising InvalidIdError for malformed input."""
    if isinstance(value, id_type):
        return value
    try:
        return id_type.from_string(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidIdError(field) from exc


class RefundService:
    """Service for cancellation refunds and wallet credits."""

    def __init__(
        self,
        store: CommerceStore,
        clock: Callable[[], datetime] = timezone.now,
        processing_fee: Decimal | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._processing_fee = processing_fee

    @property
    def processing_fee(self) -> Decimal:
        if self._processing_fee is not None:
            return self._processing_fee
        return commerce_settings().processing_fee

    def calculate(
        self,
        registration: Registration,
        occurrence: ClassOccurrence,
        cancellation_type: CancellationType,
    ) -> RefundBreakdown:
        return calculate_refund(
            original_amount=registration.amount_paid.amount,
            starts_at=occurrence.starts_at,
            cancellation_type=cancellation_type,
            now=self._clock(),
            processing_fee=self.processing_fee,
        )

    def process_automatic_refund(
        self, registration: Registration, cancellation_type: CancellationType
    ) -> RefundResult:
        """Cancel a registration and issue the refund and credit it is owed.

        Raises:
            OccurrenceNotFoundError: If the registration's occurrence is gone.
            BackendTransactionError: If the atomic application failed; nothing was applied.
        """
        occurrence = self._store.get_occurrence(registration.occurrence_id)
        if occurrence is None:
            raise OccurrenceNotFoundError(str(registration.occurrence_id))

        breakdown = self.calculate(registration, occurrence, cancellation_type)
        if registration.status.is_terminal:
            logger.info("Registration %s already %s", registration.id, registration.status.value)
            return RefundResult(registration.id, breakdown, applied=False)

        tier = select_tier(cancellation_type, breakdown.hours_until_class)
        entry = CancellationEntry(
            registration_id=registration.id,
            cancellation_type=cancellation_type,
            breakdown=breakdown,
            credit_reason=f"Cancellation credit for class: {occurrence.name}",
            restore_pass_credit=registration.pass_id is not None and tier.returns_value,
        )
        try:
            self._store.apply_cancellation(entry)
        except DuplicateApplicationError:
            logger.info("Cancellation of registration %s was already applied", registration.id)
            return RefundResult(registration.id, breakdown, applied=False)

        logger.info(
            "Cancelled registration %s (%s): refund=%s credit=%s fee=%s",
            registration.id,
            cancellation_type.value,
            breakdown.refund_amount,
            breakdown.credit_amount,
            breakdown.processing_fee,
        )
        return RefundResult(registration.id, breakdown, applied=True)

    def cancel_registration(
        self,
        registration_id: str | RegistrationId,
        cancellation_type: CancellationType = CancellationType.CUSTOMER,
    ) -> RefundResult:
        """Load a registration by id and refund it.

        Raises:
            InvalidIdError: If the registration_id is not a valid UUID.
            RegistrationNotFoundError: If the registration does not exist.
        """
        reg_id = parse_id(RegistrationId, registration_id, "registration id")
        registration = self._store.get_registration(reg_id)
        if registration is None:
            raise RegistrationNotFoundError(str(reg_id))
        return self.process_automatic_refund(registration, cancellation_type)

    def refund_each(
        self, registrations: Iterable[Registration], cancellation_type: CancellationType
    ) -> BulkResult:
        """Refund registrations independently; one failure does not stop the rest."""
        result = BulkResult()
        for registration in registrations:
            try:
                self.process_automatic_refund(registration, cancellation_type)
            except Exception as exc:
                logger.exception("Refund failed for registration %s", registration.id)
                result.record_failure(ItemFailure.from_exception(str(registration.id), exc))
            else:
                result.record_success()
        return result

    def process_bulk_refunds(
        self, registration_ids: Iterable[str], cancellation_type: CancellationType
    ) -> BulkResult:
        result = BulkResult()
        for raw_id in registration_ids:
            try:
                self.cancel_registration(raw_id, cancellation_type)
            except Exception as exc:
                logger.exception("Bulk refund failed for registration %s", raw_id)
                result.record_failure(ItemFailure.from_exception(str(raw_id), exc))
            else:
                result.record_success()
        logger.info("Bulk refund finished: %d ok, %d failed", result.successful, result.failed)
        return result
