"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every mutating operation is
atomic: it either fully applies or leaves no trace. Balances and credit counts
are only changed through the credit/debit/use/refund operations below.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from bookings.domain import (
    BookingRequest,
    CancellationEntry,
    ClassOccurrence,
    CustomerId,
    Membership,
    OccurrenceId,
    OrganizationId,
    Pass,
    PassId,
    Registration,
    RegistrationId,
    RegistrationStatus,
    Wallet,
)


class CommerceStore(ABC):
    """Interface for booking, ledger and refund persistence operations."""

    @abstractmethod
    def get_occurrence(self, occurrence_id: OccurrenceId) -> ClassOccurrence | None:
        """Return an occurrence by ID, or None if not found."""
        ...

    @abstractmethod
    def cancel_occurrence(self, occurrence_id: OccurrenceId, reason: str) -> ClassOccurrence | None:
        """Mark an occurrence cancelled. Return None if it does not exist."""
        ...

    @abstractmethod
    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        """Return a registration by ID, or None if not found."""
        ...

    @abstractmethod
    def list_registrations(
        self, occurrence_id: OccurrenceId, status: RegistrationStatus | None = None
    ) -> list[Registration]:
        """Return registrations for an occurrence, ordered by booked_at."""
        ...

    @abstractmethod
    def create_booking_transaction(self, request: BookingRequest) -> Registration:
        """Re-check capacity, capture payment and insert the registration.

        Returns a confirmed registration when the guarded seat claim succeeds,
        or a waitlisted one otherwise.

        Raises:
            OccurrenceNotFoundError: If the occurrence does not exist.
            OccurrenceNotBookableError: If the occurrence is not scheduled.
            AlreadyRegisteredError: If the customer already holds a live registration.
            CapacityExceededError: If full and ``request.allow_waitlist`` is False.
            PaymentInstrumentInsufficientError: If the wallet or pass cannot pay.
        """
        ...

    @abstractmethod
    def get_wallet(self, customer_id: CustomerId, org_id: OrganizationId) -> Wallet:
        """Return the customer's wallet, creating an empty one if needed."""
        ...

    @abstractmethod
    def add_wallet_credit(
        self,
        customer_id: CustomerId,
        org_id: OrganizationId,
        amount: Decimal,
        reason: str,
        reference_type: str,
        reference_id: str,
    ) -> Wallet:
        """Atomically increase the balance.

        Raises:
            DuplicateApplicationError: If a credit already exists for the reference.
        """
        ...

    @abstractmethod
    def deduct_wallet_credit(
        self,
        customer_id: CustomerId,
        org_id: OrganizationId,
        amount: Decimal,
        reason: str,
        reference_type: str,
        reference_id: str,
    ) -> Wallet:
        """Atomically decrease the balance.

        Raises:
            PaymentInstrumentInsufficientError: If the balance is too low.
            DuplicateApplicationError: If a debit already exists for the reference.
        """
        ...

    @abstractmethod
    def list_passes(self, customer_id: CustomerId, org_id: OrganizationId) -> list[Pass]:
        """Return active passes, newest first."""
        ...

    @abstractmethod
    def use_pass_credit(self, pass_id: PassId, occurrence_id: OccurrenceId) -> Pass:
        """Consume one credit for an occurrence.

        Raises:
            PaymentInstrumentInsufficientError: If no credits remain.
        """
        ...

    @abstractmethod
    def refund_pass_credit(self, pass_id: PassId, occurrence_id: OccurrenceId) -> Pass:
        """Return the credit used for an occurrence. No-op if none was used."""
        ...

    @abstractmethod
    def get_active_membership(
        self, customer_id: CustomerId, org_id: OrganizationId
    ) -> Membership | None:
        """Return the customer's active membership, if any."""
        ...

    @abstractmethod
    def apply_cancellation(self, entry: CancellationEntry) -> Registration:
        """Cancel a registration and issue its credit and refund as one unit.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
            DuplicateApplicationError: If already cancelled or already compensated.
        """
        ...
