"""Booking lifecycle coordinator.

A booking moves slot_selected -> customer_selected -> payment_method_chosen and
then to confirmed or waitlisted, depending on capacity at commit time. The
commit itself is a single atomic store operation.
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from bookings.domain import (
    BookingRequest,
    BookingStep,
    CancellationType,
    ClassOccurrence,
    CustomerId,
    OccurrenceId,
    OccurrenceStatus,
    PaymentMethod,
    PaymentOption,
    Registration,
    RegistrationStatus,
)
from bookings.domain.errors import (
    DomainError,
    InvalidBookingTransitionError,
    OccurrenceNotBookableError,
    OccurrenceNotFoundError,
    PaymentInstrumentInsufficientError,
)
from bookings.services.refund_service import RefundService, parse_id
from bookings.services.results import BulkResult, ItemFailure, OccurrenceCancellationResult
from bookings.stores.interfaces import CommerceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingFlow:
    """Snapshot of one booking in progress."""

    occurrence: ClassOccurrence
    step: BookingStep = BookingStep.SLOT_SELECTED
    customer_id: CustomerId | None = None
    payment: PaymentOption | None = None
    registration: Registration | None = None


def format_waitlist_position(registration: Registration) -> str:
    if registration.status is not RegistrationStatus.WAITLISTED:
        return ""
    if registration.waitlist_priority is None:
        return "On the waitlist"
    return f"#{registration.waitlist_priority} on the waitlist"


class BookingCoordinator:
    """Drives registrations from slot selection to confirmation or cancellation."""

    def __init__(
        self,
        store: CommerceStore,
        refunds: RefundService | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._refunds = refunds or RefundService(store, clock=clock)

    def _require_step(self, flow: BookingFlow, expected: BookingStep, action: str) -> None:
        if flow.step is not expected:
            raise InvalidBookingTransitionError(flow.step.value, action)

    def start(self, occurrence_id: str | OccurrenceId) -> BookingFlow:
        """Select a class slot.

        Raises:
            InvalidIdError: If the occurrence_id is not a valid UUID.
            OccurrenceNotFoundError: If the occurrence does not exist.
            OccurrenceNotBookableError: If the occurrence is not scheduled.
        """
        occ_id = parse_id(OccurrenceId, occurrence_id, "occurrence id")
        occurrence = self._store.get_occurrence(occ_id)
        if occurrence is None:
            raise OccurrenceNotFoundError(str(occ_id))
        if occurrence.status is not OccurrenceStatus.SCHEDULED:
            raise OccurrenceNotBookableError(str(occ_id), occurrence.status.value)
        return BookingFlow(occurrence=occurrence)

    def select_customer(self, flow: BookingFlow, customer_id: str | CustomerId) -> BookingFlow:
        self._require_step(flow, BookingStep.SLOT_SELECTED, "select a customer")
        cust_id = parse_id(CustomerId, customer_id, "customer id")
        return dataclasses.replace(flow, step=BookingStep.CUSTOMER_SELECTED, customer_id=cust_id)

    def payment_options(self, flow: BookingFlow) -> list[PaymentOption]:
        """Instruments the customer can pay with right now, from current balances."""
        if flow.customer_id is None:
            raise InvalidBookingTransitionError(flow.step.value, "list payment options")
        occurrence = flow.occurrence
        now = self._clock()
        options: list[PaymentOption] = []

        membership = self._store.get_active_membership(flow.customer_id, occurrence.org_id)
        if membership is not None and membership.covers(occurrence, now):
            options.append(PaymentOption(method=PaymentMethod.MEMBERSHIP, label=membership.name))

        wallet = self._store.get_wallet(flow.customer_id, occurrence.org_id)
        if wallet.is_active and wallet.balance.amount >= occurrence.price.amount:
            options.append(
                PaymentOption(
                    method=PaymentMethod.WALLET,
                    label="Wallet",
                    available_balance=wallet.balance,
                )
            )

        for class_pass in self._store.list_passes(flow.customer_id, occurrence.org_id):
            if class_pass.is_usable_for(occurrence, now):
                options.append(
                    PaymentOption(
                        method=PaymentMethod.PASS,
                        label=class_pass.name,
                        pass_id=class_pass.id,
                        remaining_credits=class_pass.remaining_credits,
                    )
                )

        options.append(PaymentOption(method=PaymentMethod.TWINT, label="TWINT"))
        options.append(PaymentOption(method=PaymentMethod.CARD, label="Credit card"))
        return options

    def choose_payment(self, flow: BookingFlow, option_key: str) -> BookingFlow:
        """Pick one of the currently available instruments by its key.

        Raises:
            PaymentInstrumentInsufficientError: If the instrument is not available.
        """
        self._require_step(flow, BookingStep.CUSTOMER_SELECTED, "choose a payment method")
        for option in self.payment_options(flow):
            if option.key == option_key:
                return dataclasses.replace(
                    flow, step=BookingStep.PAYMENT_METHOD_CHOSEN, payment=option
                )
        raise PaymentInstrumentInsufficientError(option_key, str(flow.customer_id))

    def confirm(self, flow: BookingFlow, notes: str = "", allow_waitlist: bool = True) -> BookingFlow:
        """Commit the booking atomically; ends confirmed or waitlisted."""
        self._require_step(flow, BookingStep.PAYMENT_METHOD_CHOSEN, "confirm")
        occurrence = flow.occurrence
        request = BookingRequest(
            occurrence_id=occurrence.id,
            customer_id=flow.customer_id,
            org_id=occurrence.org_id,
            payment_method=flow.payment.method,
            amount=occurrence.price,
            pass_id=flow.payment.pass_id,
            notes=notes,
            allow_waitlist=allow_waitlist,
        )
        try:
            registration = self._store.create_booking_transaction(request)
        except DomainError as exc:
            logger.warning(
                "Booking failed for customer %s on occurrence %s: %s",
                flow.customer_id,
                occurrence.id,
                exc,
            )
            raise

        if registration.status is RegistrationStatus.WAITLISTED:
            step = BookingStep.WAITLISTED
        else:
            step = BookingStep.CONFIRMED
        return dataclasses.replace(flow, step=step, registration=registration)

    def process_booking(
        self,
        occurrence_id: str | OccurrenceId,
        customer_id: str | CustomerId,
        payment: str,
        notes: str = "",
        allow_waitlist: bool = True,
    ) -> Registration:
        flow = self.start(occurrence_id)
        flow = self.select_customer(flow, customer_id)
        flow = self.choose_payment(flow, payment)
        flow = self.confirm(flow, notes=notes, allow_waitlist=allow_waitlist)
        return flow.registration

    def cancel_class_occurrence(
        self,
        occurrence_id: str | OccurrenceId,
        reason: str,
        notify_customers: bool = True,
    ) -> OccurrenceCancellationResult:
        """Cancel an occurrence and fully refund every registration holding a seat.

        Safe to call again: the occurrence stays cancelled and only registrations
        still holding a seat are refunded.
        """
        occ_id = parse_id(OccurrenceId, occurrence_id, "occurrence id")
        occurrence = self._store.cancel_occurrence(occ_id, reason)
        if occurrence is None:
            raise OccurrenceNotFoundError(str(occ_id))

        registrations = [
            registration
            for registration in self._store.list_registrations(occ_id)
            if registration.status.holds_seat
        ]
        refunds = BulkResult()
        if notify_customers:
            refunds = self._refunds.refund_each(registrations, CancellationType.INSTRUCTOR)

        logger.info(
            "Cancelled occurrence %s: %d registrations, %d refunded, %d failed",
            occ_id,
            len(registrations),
            refunds.successful,
            refunds.failed,
        )
        return OccurrenceCancellationResult(
            occurrence=occurrence,
            affected_registrations=len(registrations),
            refunds=refunds,
        )

    def process_bulk_cancellations(
        self,
        occurrence_ids: Iterable[str],
        reason: str,
        notify_customers: bool = True,
    ) -> BulkResult:
        result = BulkResult()
        for raw_id in occurrence_ids:
            try:
                cancelled = self.cancel_class_occurrence(raw_id, reason, notify_customers)
            except Exception as exc:
                logger.exception("Bulk cancellation failed for occurrence %s", raw_id)
                result.record_failure(ItemFailure.from_exception(str(raw_id), exc))
                continue
            if cancelled.refunds.failed:
                first = cancelled.refunds.failures[0]
                result.record_failure(
                    ItemFailure(
                        item_id=str(raw_id),
                        code=first.code,
                        message=f"{cancelled.refunds.failed} refund(s) failed: {first.message}",
                    )
                )
            else:
                result.record_success()
        logger.info(
            "Bulk cancellation finished: %d ok, %d failed", result.successful, result.failed
        )
        return result
