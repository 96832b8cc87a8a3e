"""Django ORM implementation of the CommerceStore.

Counters and balances are only changed with conditional ``F()`` updates inside
``transaction.atomic`` so concurrent bookings and refunds cannot lose updates.
"""

import functools
import logging
import uuid
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.db.models import F, Max
from django.utils import timezone

from bookings import models
from bookings.conf import commerce_settings
from bookings.domain import (
    BookingRequest,
    CancellationEntry,
    Capacity,
    ClassOccurrence,
    CustomerId,
    Membership,
    Money,
    OccurrenceId,
    OccurrenceStatus,
    OrganizationId,
    Pass,
    PassId,
    PaymentMethod,
    Registration,
    RegistrationId,
    RegistrationStatus,
    Wallet,
)
from bookings.domain.errors import (
    AlreadyRegisteredError,
    BackendTransactionError,
    CapacityExceededError,
    DuplicateApplicationError,
    OccurrenceNotBookableError,
    OccurrenceNotFoundError,
    PaymentInstrumentInsufficientError,
    RegistrationNotFoundError,
)
from bookings.stores.interfaces import CommerceStore

logger = logging.getLogger(__name__)

CANCELLATION_REFERENCE = "cancellation"
REGISTRATION_REFERENCE = "registration"


def translate_database_errors(operation: str):
    """Re-raise database failures as retryable BackendTransactionError."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except DatabaseError as exc:
                logger.exception("Database error during %s", operation)
                raise BackendTransactionError(operation) from exc

        return wrapper

    return decorator


def _to_occurrence(row: models.ClassOccurrence) -> ClassOccurrence:
    return ClassOccurrence(
        id=OccurrenceId(row.id),
        org_id=OrganizationId(row.org_id),
        name=row.name,
        class_type=row.class_type,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        capacity=Capacity(row.capacity),
        booked_count=row.booked_count,
        waitlist_count=row.waitlist_count,
        price=Money(row.price),
        status=OccurrenceStatus(row.status),
        cancellation_reason=row.cancellation_reason,
    )


def _to_registration(row: models.Registration) -> Registration:
    return Registration(
        id=RegistrationId(row.id),
        org_id=OrganizationId(row.org_id),
        customer_id=CustomerId(row.customer_id),
        occurrence_id=OccurrenceId(row.occurrence_id),
        status=RegistrationStatus(row.status),
        payment_method=PaymentMethod(row.payment_method),
        amount_paid=Money(row.amount_paid),
        booked_at=row.booked_at,
        cancelled_at=row.cancelled_at,
        pass_id=PassId(row.class_pass_id) if row.class_pass_id else None,
        notes=row.notes,
        waitlist_priority=row.waitlist_priority,
        auto_promote=row.auto_promote,
    )


def _to_wallet(row: models.Wallet) -> Wallet:
    return Wallet(
        customer_id=CustomerId(row.customer_id),
        org_id=OrganizationId(row.org_id),
        balance=Money(row.balance),
        currency=row.currency,
        is_active=row.is_active,
    )


def _to_pass(row: models.Pass) -> Pass:
    return Pass(
        id=PassId(row.id),
        customer_id=CustomerId(row.customer_id),
        org_id=OrganizationId(row.org_id),
        name=row.name,
        credits_total=row.credits_total,
        credits_used=row.credits_used,
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        is_active=row.is_active,
        class_types=tuple(row.class_types or ()),
    )


def _to_membership(row: models.Membership) -> Membership:
    return Membership(
        customer_id=CustomerId(row.customer_id),
        org_id=OrganizationId(row.org_id),
        name=row.name,
        valid_until=row.valid_until,
        is_active=row.is_active,
        class_types=tuple(row.class_types or ()),
    )


class DjangoCommerceStore(CommerceStore):
    """PostgreSQL-backed commerce store using Django ORM."""

    def get_occurrence(self, occurrence_id: OccurrenceId) -> ClassOccurrence | None:
        row = models.ClassOccurrence.objects.filter(pk=occurrence_id.value).first()
        return _to_occurrence(row) if row else None

    @translate_database_errors("occurrence cancellation")
    def cancel_occurrence(self, occurrence_id: OccurrenceId, reason: str) -> ClassOccurrence | None:
        with transaction.atomic():
            row = (
                models.ClassOccurrence.objects.select_for_update()
                .filter(pk=occurrence_id.value)
                .first()
            )
            if row is None:
                return None
            if row.status != models.ClassOccurrence.Status.CANCELLED:
                row.status = models.ClassOccurrence.Status.CANCELLED
                row.cancellation_reason = reason
                row.save(update_fields=["status", "cancellation_reason", "updated_at"])
            return _to_occurrence(row)

    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        row = models.Registration.objects.filter(pk=registration_id.value).first()
        return _to_registration(row) if row else None

    def list_registrations(
        self, occurrence_id: OccurrenceId, status: RegistrationStatus | None = None
    ) -> list[Registration]:
        qs = models.Registration.objects.filter(occurrence_id=occurrence_id.value)
        if status is not None:
            qs = qs.filter(status=status.value)
        return [_to_registration(row) for row in qs.order_by("booked_at")]

    @translate_database_errors("booking transaction")
    def create_booking_transaction(self, request: BookingRequest) -> Registration:
        with transaction.atomic():
            occurrence = self._lock_occurrence(request.occurrence_id)
            if occurrence is None:
                raise OccurrenceNotFoundError(str(request.occurrence_id))
            if occurrence.status != models.ClassOccurrence.Status.SCHEDULED:
                raise OccurrenceNotBookableError(str(request.occurrence_id), occurrence.status)

            already_booked = (
                models.Registration.objects.filter(
                    occurrence=occurrence, customer_id=request.customer_id.value
                )
                .exclude(status__in=models.Registration.TERMINAL_STATUSES)
                .exists()
            )
            if already_booked:
                raise AlreadyRegisteredError(str(request.occurrence_id), str(request.customer_id))

            registration_id = uuid.uuid4()
            if self._take_seat(occurrence):
                row = self._insert_confirmed(occurrence, request, registration_id)
            else:
                row = self._insert_waitlisted(occurrence, request, registration_id)

        logger.info(
            "Booking %s committed for customer %s on occurrence %s as %s",
            row.id,
            request.customer_id,
            request.occurrence_id,
            row.status,
        )
        return _to_registration(row)

    def _lock_occurrence(self, occurrence_id: OccurrenceId) -> models.ClassOccurrence | None:
        return (
            models.ClassOccurrence.objects.select_for_update().filter(pk=occurrence_id.value).first()
        )

    def _take_seat(self, occurrence: models.ClassOccurrence) -> bool:
        """Claim a seat only if the committed booked count is still below capacity."""
        updated = models.ClassOccurrence.objects.filter(
            pk=occurrence.pk, booked_count__lt=F("capacity")
        ).update(booked_count=F("booked_count") + 1, updated_at=timezone.now())
        return updated == 1

    def _insert_waitlisted(self, occurrence, request, registration_id) -> models.Registration:
        if not request.allow_waitlist:
            raise CapacityExceededError(str(request.occurrence_id))
        last = models.Registration.objects.filter(occurrence=occurrence).aggregate(
            last=Max("waitlist_priority")
        )["last"]
        models.ClassOccurrence.objects.filter(pk=occurrence.pk).update(
            waitlist_count=F("waitlist_count") + 1, updated_at=timezone.now()
        )
        return models.Registration.objects.create(
            id=registration_id,
            org_id=request.org_id.value,
            customer_id=request.customer_id.value,
            occurrence=occurrence,
            status=models.Registration.Status.WAITLISTED,
            payment_method=request.payment_method.value,
            amount_paid=Decimal("0"),
            notes=request.notes,
            waitlist_priority=(last or 0) + 1,
            auto_promote=commerce_settings().waitlist_auto_promote,
        )

    def _insert_confirmed(self, occurrence, request, registration_id) -> models.Registration:
        amount_paid = self._capture_payment(request, registration_id)
        return models.Registration.objects.create(
            id=registration_id,
            org_id=request.org_id.value,
            customer_id=request.customer_id.value,
            occurrence=occurrence,
            status=models.Registration.Status.CONFIRMED,
            payment_method=request.payment_method.value,
            class_pass_id=request.pass_id.value if request.pass_id else None,
            amount_paid=amount_paid,
            notes=request.notes,
        )

    def _capture_payment(self, request: BookingRequest, registration_id: uuid.UUID) -> Decimal:
        """Take payment for a seat and return the amount recorded as paid."""
        method = request.payment_method
        if method is PaymentMethod.WALLET:
            self.deduct_wallet_credit(
                request.customer_id,
                request.org_id,
                request.amount.amount,
                "Class booking",
                REGISTRATION_REFERENCE,
                str(registration_id),
            )
            return request.amount.amount
        if method is PaymentMethod.PASS:
            owned = request.pass_id is not None and models.Pass.objects.filter(
                pk=request.pass_id.value,
                customer_id=request.customer_id.value,
                org_id=request.org_id.value,
            ).exists()
            if not owned:
                raise PaymentInstrumentInsufficientError(
                    method.value, str(request.customer_id), "Pass not found for this customer"
                )
            self.use_pass_credit(request.pass_id, request.occurrence_id)
            return Decimal("0")
        if method is PaymentMethod.MEMBERSHIP:
            return Decimal("0")
        # Card and TWINT are charged by the payment provider.
        return request.amount.amount

    def _wallet_row(self, customer_id: CustomerId, org_id: OrganizationId) -> models.Wallet:
        row, created = models.Wallet.objects.get_or_create(
            customer_id=customer_id.value,
            org_id=org_id.value,
            defaults={"currency": commerce_settings().currency},
        )
        if created:
            logger.info("Created wallet for customer %s in org %s", customer_id, org_id)
        return row

    @translate_database_errors("wallet read")
    def get_wallet(self, customer_id: CustomerId, org_id: OrganizationId) -> Wallet:
        return _to_wallet(self._wallet_row(customer_id, org_id))

    @translate_database_errors("wallet credit")
    def add_wallet_credit(
        self,
        customer_id: CustomerId,
        org_id: OrganizationId,
        amount: Decimal,
        reason: str,
        reference_type: str,
        reference_id: str,
    ) -> Wallet:
        with transaction.atomic():
            wallet = self._wallet_row(customer_id, org_id)
            if models.WalletTransaction.objects.filter(
                reference_type=reference_type,
                reference_id=reference_id,
                kind=models.WalletTransaction.Kind.CREDIT,
            ).exists():
                raise DuplicateApplicationError(reference_id)
            models.Wallet.objects.filter(pk=wallet.pk).update(
                balance=F("balance") + amount, updated_at=timezone.now()
            )
            models.WalletTransaction.objects.create(
                wallet=wallet,
                kind=models.WalletTransaction.Kind.CREDIT,
                amount=amount,
                reason=reason,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            wallet.refresh_from_db()
        return _to_wallet(wallet)

    @translate_database_errors("wallet debit")
    def deduct_wallet_credit(
        self,
        customer_id: CustomerId,
        org_id: OrganizationId,
        amount: Decimal,
        reason: str,
        reference_type: str,
        reference_id: str,
    ) -> Wallet:
        with transaction.atomic():
            wallet = self._wallet_row(customer_id, org_id)
            if models.WalletTransaction.objects.filter(
                reference_type=reference_type,
                reference_id=reference_id,
                kind=models.WalletTransaction.Kind.DEBIT,
            ).exists():
                raise DuplicateApplicationError(reference_id)
            updated = models.Wallet.objects.filter(
                pk=wallet.pk, is_active=True, balance__gte=amount
            ).update(balance=F("balance") - amount, updated_at=timezone.now())
            if not updated:
                raise PaymentInstrumentInsufficientError(
                    PaymentMethod.WALLET.value, str(customer_id), "Insufficient wallet balance"
                )
            models.WalletTransaction.objects.create(
                wallet=wallet,
                kind=models.WalletTransaction.Kind.DEBIT,
                amount=-amount,
                reason=reason,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            wallet.refresh_from_db()
        return _to_wallet(wallet)

    def list_passes(self, customer_id: CustomerId, org_id: OrganizationId) -> list[Pass]:
        qs = models.Pass.objects.filter(
            customer_id=customer_id.value, org_id=org_id.value, is_active=True
        ).order_by("-created_at")
        return [_to_pass(row) for row in qs]

    @translate_database_errors("pass credit use")
    def use_pass_credit(self, pass_id: PassId, occurrence_id: OccurrenceId) -> Pass:
        with transaction.atomic():
            row = models.Pass.objects.select_for_update().filter(pk=pass_id.value).first()
            if row is None:
                raise PaymentInstrumentInsufficientError(
                    PaymentMethod.PASS.value, "", "Pass not found"
                )
            if row.usages.filter(occurrence_id=occurrence_id.value).exists():
                return _to_pass(row)
            updated = models.Pass.objects.filter(
                pk=row.pk, is_active=True, credits_used__lt=F("credits_total")
            ).update(credits_used=F("credits_used") + 1)
            if not updated:
                raise PaymentInstrumentInsufficientError(
                    PaymentMethod.PASS.value, str(row.customer_id), "No pass credits remaining"
                )
            models.PassUsage.objects.create(class_pass=row, occurrence_id=occurrence_id.value)
            row.refresh_from_db()
        return _to_pass(row)

    @translate_database_errors("pass credit refund")
    def refund_pass_credit(self, pass_id: PassId, occurrence_id: OccurrenceId) -> Pass:
        with transaction.atomic():
            row = models.Pass.objects.select_for_update().filter(pk=pass_id.value).first()
            if row is None:
                raise PaymentInstrumentInsufficientError(
                    PaymentMethod.PASS.value, "", "Pass not found"
                )
            deleted, _ = row.usages.filter(occurrence_id=occurrence_id.value).delete()
            if deleted:
                models.Pass.objects.filter(pk=row.pk, credits_used__gt=0).update(
                    credits_used=F("credits_used") - 1
                )
                row.refresh_from_db()
        return _to_pass(row)

    def get_active_membership(
        self, customer_id: CustomerId, org_id: OrganizationId
    ) -> Membership | None:
        row = (
            models.Membership.objects.filter(
                customer_id=customer_id.value, org_id=org_id.value, is_active=True
            )
            .order_by("-created_at")
            .first()
        )
        return _to_membership(row) if row else None

    @translate_database_errors("cancellation")
    def apply_cancellation(self, entry: CancellationEntry) -> Registration:
        breakdown = entry.breakdown
        with transaction.atomic():
            row = (
                models.Registration.objects.select_for_update()
                .filter(pk=entry.registration_id.value)
                .first()
            )
            if row is None:
                raise RegistrationNotFoundError(str(entry.registration_id))
            if row.status in models.Registration.TERMINAL_STATUSES:
                raise DuplicateApplicationError(str(entry.registration_id))
            if models.RefundOrder.objects.filter(registration=row).exists():
                raise DuplicateApplicationError(str(entry.registration_id))

            previous = RegistrationStatus(row.status)
            row.status = models.Registration.Status.CANCELLED
            row.cancelled_at = timezone.now()
            row.notes = f"Auto-cancelled: {entry.cancellation_type.value}"
            row.save(update_fields=["status", "cancelled_at", "notes", "updated_at"])

            occurrences = models.ClassOccurrence.objects.filter(pk=row.occurrence_id)
            if previous.holds_seat:
                occurrences.filter(booked_count__gt=0).update(
                    booked_count=F("booked_count") - 1, updated_at=timezone.now()
                )
            elif previous is RegistrationStatus.WAITLISTED:
                occurrences.filter(waitlist_count__gt=0).update(
                    waitlist_count=F("waitlist_count") - 1, updated_at=timezone.now()
                )

            customer_id = CustomerId(row.customer_id)
            org_id = OrganizationId(row.org_id)
            if breakdown.credit_amount > 0:
                self.add_wallet_credit(
                    customer_id,
                    org_id,
                    breakdown.credit_amount,
                    entry.credit_reason,
                    CANCELLATION_REFERENCE,
                    str(row.id),
                )
            if breakdown.refund_amount > 0:
                models.RefundOrder.objects.create(
                    registration=row,
                    customer_id=row.customer_id,
                    org_id=row.org_id,
                    amount=-breakdown.refund_amount,
                    currency=commerce_settings().currency,
                    notes=f"Refund for cancelled registration {row.id}",
                )
            if entry.restore_pass_credit and row.class_pass_id:
                self.refund_pass_credit(PassId(row.class_pass_id), OccurrenceId(row.occurrence_id))

        return _to_registration(row)
