"""Integration tests for DjangoCommerceStore.

Run with: pytest tests/test_django_store.py -v
"""

import threading
import uuid
from decimal import Decimal

import pytest
from django.db import connection
from django.utils import timezone

from bookings import models
from bookings.domain import (
    BookingRequest,
    CancellationEntry,
    CancellationType,
    CustomerId,
    Money,
    OccurrenceId,
    OrganizationId,
    PassId,
    PaymentMethod,
    RegistrationStatus,
)
from bookings.domain.errors import (
    AlreadyRegisteredError,
    DuplicateApplicationError,
    OccurrenceNotBookableError,
    OccurrenceNotFoundError,
    PaymentInstrumentInsufficientError,
)
from bookings.domain.policy import calculate_refund
from bookings.services import BookingCoordinator, RefundService
from bookings.stores.django_store import DjangoCommerceStore
from tests.factories import ORG_ID, fund_wallet, make_occurrence, make_pass


def booking_request(occurrence, customer_id=None, method=PaymentMethod.CARD, **overrides):
    values = dict(
        occurrence_id=OccurrenceId(occurrence.id),
        customer_id=CustomerId(customer_id or uuid.uuid4()),
        org_id=OrganizationId(occurrence.org_id),
        payment_method=method,
        amount=Money(occurrence.price),
    )
    values.update(overrides)
    return BookingRequest(**values)


def cancellation(registration, cancellation_type=CancellationType.CUSTOMER, **overrides):
    occurrence = models.ClassOccurrence.objects.get(pk=registration.occurrence_id.value)
    breakdown = calculate_refund(
        registration.amount_paid.amount, occurrence.starts_at, cancellation_type, timezone.now()
    )
    values = dict(
        registration_id=registration.id,
        cancellation_type=cancellation_type,
        breakdown=breakdown,
        credit_reason="Cancellation credit for class: Morning Hatha",
    )
    values.update(overrides)
    return CancellationEntry(**values)


@pytest.fixture
def django_store() -> DjangoCommerceStore:
    return DjangoCommerceStore()


@pytest.mark.django_db
class TestBookingTransaction:
    def test_wallet_booking_debits_price_and_confirms(self, django_store):
        occurrence = make_occurrence()
        customer = uuid.uuid4()
        fund_wallet(customer, "100.00")

        registration = django_store.create_booking_transaction(
            booking_request(occurrence, customer, PaymentMethod.WALLET)
        )

        assert registration.status is RegistrationStatus.CONFIRMED
        assert registration.amount_paid.amount == Decimal("40.00")
        wallet = models.Wallet.objects.get(customer_id=customer)
        assert wallet.balance == Decimal("60.00")
        debit = wallet.transactions.get()
        assert debit.amount == Decimal("-40.00")
        assert debit.reference_id == str(registration.id)
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 1

    def test_insufficient_wallet_leaves_no_trace(self, django_store):
        occurrence = make_occurrence()
        customer = uuid.uuid4()
        fund_wallet(customer, "10.00")

        with pytest.raises(PaymentInstrumentInsufficientError):
            django_store.create_booking_transaction(
                booking_request(occurrence, customer, PaymentMethod.WALLET)
            )

        assert not models.Registration.objects.exists()
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 0
        assert models.Wallet.objects.get(customer_id=customer).balance == Decimal("10.00")

    def test_last_seat_goes_to_first_commit(self, django_store):
        occurrence = make_occurrence(capacity=1)

        first = django_store.create_booking_transaction(booking_request(occurrence))
        second = django_store.create_booking_transaction(booking_request(occurrence))

        assert first.status is RegistrationStatus.CONFIRMED
        assert second.status is RegistrationStatus.WAITLISTED
        assert second.waitlist_priority == 1
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 1
        assert occurrence.waitlist_count == 1

    def test_waitlist_priority_follows_join_order(self, django_store):
        occurrence = make_occurrence(capacity=0)

        priorities = [
            django_store.create_booking_transaction(booking_request(occurrence)).waitlist_priority
            for _ in range(3)
        ]

        assert priorities == [1, 2, 3]

    def test_same_customer_cannot_book_twice(self, django_store):
        occurrence = make_occurrence()
        customer = uuid.uuid4()
        django_store.create_booking_transaction(booking_request(occurrence, customer))

        with pytest.raises(AlreadyRegisteredError):
            django_store.create_booking_transaction(booking_request(occurrence, customer))

    def test_cancelled_occurrence_is_not_bookable(self, django_store):
        occurrence = make_occurrence(status=models.ClassOccurrence.Status.CANCELLED)

        with pytest.raises(OccurrenceNotBookableError):
            django_store.create_booking_transaction(booking_request(occurrence))

    def test_unknown_occurrence(self, django_store):
        occurrence = make_occurrence()
        request = booking_request(occurrence, occurrence_id=OccurrenceId(uuid.uuid4()))

        with pytest.raises(OccurrenceNotFoundError):
            django_store.create_booking_transaction(request)

    def test_pass_booking_consumes_credit_once(self, django_store):
        occurrence = make_occurrence()
        customer = uuid.uuid4()
        class_pass = make_pass(customer)

        registration = django_store.create_booking_transaction(
            booking_request(occurrence, customer, PaymentMethod.PASS, pass_id=PassId(class_pass.id))
        )

        class_pass.refresh_from_db()
        assert class_pass.credits_used == 1
        assert registration.pass_id == PassId(class_pass.id)
        assert registration.amount_paid.amount == 0

    def test_someone_elses_pass_is_rejected(self, django_store):
        occurrence = make_occurrence()
        class_pass = make_pass(uuid.uuid4())

        with pytest.raises(PaymentInstrumentInsufficientError):
            django_store.create_booking_transaction(
                booking_request(occurrence, method=PaymentMethod.PASS, pass_id=PassId(class_pass.id))
            )

    def test_seat_claim_is_decided_by_the_database(self, django_store, monkeypatch):
        occurrence = make_occurrence(capacity=1)
        stale = models.ClassOccurrence.objects.get(pk=occurrence.pk)
        django_store.create_booking_transaction(booking_request(occurrence))
        monkeypatch.setattr(django_store, "_lock_occurrence", lambda occurrence_id: stale)

        registration = django_store.create_booking_transaction(booking_request(occurrence))

        assert stale.booked_count == 0
        assert registration.status is RegistrationStatus.WAITLISTED
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 1


@pytest.mark.django_db
class TestLedger:
    def test_wallet_is_created_lazily(self, django_store):
        wallet = django_store.get_wallet(CustomerId(uuid.uuid4()), OrganizationId(ORG_ID))

        assert wallet.balance.amount == 0
        assert wallet.currency == "CHF"

    def test_credit_for_same_reference_is_rejected(self, django_store):
        customer, org = CustomerId(uuid.uuid4()), OrganizationId(ORG_ID)
        django_store.add_wallet_credit(customer, org, Decimal("5"), "Gift", "promo", "ref-1")

        with pytest.raises(DuplicateApplicationError):
            django_store.add_wallet_credit(customer, org, Decimal("5"), "Gift", "promo", "ref-1")

        assert django_store.get_wallet(customer, org).balance.amount == Decimal("5.00")

    def test_wallets_do_not_cross_organizations(self, django_store):
        customer = CustomerId(uuid.uuid4())
        other_org = OrganizationId(uuid.uuid4())
        django_store.add_wallet_credit(
            customer, OrganizationId(ORG_ID), Decimal("20"), "Gift", "promo", "ref-2"
        )

        assert django_store.get_wallet(customer, other_org).balance.amount == 0

    def test_pass_credit_refund_without_usage_is_a_no_op(self, django_store):
        class_pass = make_pass(uuid.uuid4(), credits_used=2)

        refunded = django_store.refund_pass_credit(PassId(class_pass.id), OccurrenceId(uuid.uuid4()))

        assert refunded.credits_used == 2

    def test_exhausted_pass_cannot_be_used(self, django_store):
        class_pass = make_pass(uuid.uuid4(), credits_total=1, credits_used=1)

        with pytest.raises(PaymentInstrumentInsufficientError):
            django_store.use_pass_credit(PassId(class_pass.id), OccurrenceId(uuid.uuid4()))


@pytest.mark.django_db
class TestApplyCancellation:
    def test_partial_tier_writes_credit_and_refund_order(self, django_store):
        occurrence = make_occurrence(hours_from_now=15)
        registration = django_store.create_booking_transaction(booking_request(occurrence))

        cancelled = django_store.apply_cancellation(cancellation(registration))

        assert cancelled.status is RegistrationStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        refund = models.RefundOrder.objects.get(registration_id=registration.id.value)
        assert refund.amount == Decimal("-17.50")
        assert refund.currency == "CHF"
        credit = models.WalletTransaction.objects.get(reference_id=str(registration.id))
        assert credit.amount == Decimal("20.00")
        assert credit.reference_type == "cancellation"
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 0

    def test_second_application_is_rejected_without_side_effects(self, django_store):
        occurrence = make_occurrence(hours_from_now=15)
        registration = django_store.create_booking_transaction(booking_request(occurrence))
        django_store.apply_cancellation(cancellation(registration))

        with pytest.raises(DuplicateApplicationError):
            django_store.apply_cancellation(cancellation(registration))

        assert models.RefundOrder.objects.count() == 1
        assert models.WalletTransaction.objects.count() == 1

    def test_failed_credit_rolls_back_the_cancellation(self, django_store):
        occurrence = make_occurrence(hours_from_now=6)
        registration = django_store.create_booking_transaction(booking_request(occurrence))
        wallet = fund_wallet(registration.customer_id.value, "0")
        models.WalletTransaction.objects.create(
            wallet=wallet,
            kind=models.WalletTransaction.Kind.CREDIT,
            amount=Decimal("1"),
            reason="stale",
            reference_type="cancellation",
            reference_id=str(registration.id),
        )

        with pytest.raises(DuplicateApplicationError):
            django_store.apply_cancellation(cancellation(registration))

        row = models.Registration.objects.get(pk=registration.id.value)
        assert row.status == models.Registration.Status.CONFIRMED
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 1

    def test_waitlisted_cancellation_shrinks_waitlist(self, django_store):
        occurrence = make_occurrence(capacity=0)
        registration = django_store.create_booking_transaction(booking_request(occurrence))

        django_store.apply_cancellation(cancellation(registration))

        occurrence.refresh_from_db()
        assert occurrence.waitlist_count == 0
        assert not models.RefundOrder.objects.exists()


@pytest.mark.django_db
class TestEndToEnd:
    def test_instructor_cancellation_refunds_every_confirmed_registration(self, django_store):
        occurrence = make_occurrence(price=Decimal("30.00"))
        customers = [uuid.uuid4() for _ in range(3)]
        for customer in customers:
            fund_wallet(customer, "30.00")
            django_store.create_booking_transaction(
                booking_request(occurrence, customer, PaymentMethod.WALLET)
            )
        coordinator = BookingCoordinator(django_store)

        result = coordinator.cancel_class_occurrence(str(occurrence.id), "Instructor sick")

        assert result.affected_registrations == 3
        assert result.refunds.successful == 3
        assert set(models.Registration.objects.values_list("status", flat=True)) == {"cancelled"}
        assert sorted(models.RefundOrder.objects.values_list("amount", flat=True)) == [
            Decimal("-30.00")
        ] * 3
        assert not models.WalletTransaction.objects.filter(kind="credit").exists()

    def test_customer_cancellation_through_refund_service(self, django_store):
        occurrence = make_occurrence(hours_from_now=15)
        customer = uuid.uuid4()
        fund_wallet(customer, "40.00")
        registration = BookingCoordinator(django_store).process_booking(
            str(occurrence.id), str(customer), "wallet"
        )

        result = RefundService(django_store).cancel_registration(registration.id)

        assert result.applied
        assert result.breakdown.refund_amount == Decimal("17.50")
        assert result.breakdown.credit_amount == Decimal("20.00")
        assert models.Wallet.objects.get(customer_id=customer).balance == Decimal("20.00")

    def test_card_customer_is_refunded_when_class_is_cancelled(self, django_store):
        occurrence = make_occurrence(price=Decimal("30.00"))
        coordinator = BookingCoordinator(django_store)
        registration = coordinator.process_booking(str(occurrence.id), str(uuid.uuid4()), "card")

        result = coordinator.cancel_class_occurrence(str(occurrence.id), "Instructor sick")

        assert registration.status is RegistrationStatus.CONFIRMED
        assert result.affected_registrations == 1
        row = models.Registration.objects.get(pk=registration.id.value)
        assert row.status == models.Registration.Status.CANCELLED
        assert models.RefundOrder.objects.get(registration=row).amount == Decimal("-30.00")
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 0


@pytest.mark.skipif(
    connection.vendor == "sqlite", reason="SQLite serializes writers without row locks"
)
@pytest.mark.django_db(transaction=True)
class TestConcurrentBooking:
    def test_two_customers_racing_for_the_last_seat(self):
        occurrence = make_occurrence(capacity=1)
        barrier = threading.Barrier(2)
        statuses = []
        errors = []

        def book():
            try:
                barrier.wait()
                registration = DjangoCommerceStore().create_booking_transaction(
                    booking_request(occurrence)
                )
                statuses.append(registration.status)
            except Exception as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=book) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert sorted(status.value for status in statuses) == ["confirmed", "waitlisted"]
        occurrence.refresh_from_db()
        assert occurrence.booked_count == 1
        assert occurrence.waitlist_count == 1
