"""Domain error codes for the bookings module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    OCCURRENCE_NOT_FOUND = "OCCURRENCE_NOT_FOUND"
    OCCURRENCE_NOT_BOOKABLE = "OCCURRENCE_NOT_BOOKABLE"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    PAYMENT_INSTRUMENT_INSUFFICIENT = "PAYMENT_INSTRUMENT_INSUFFICIENT"
    INVALID_BOOKING_TRANSITION = "INVALID_BOOKING_TRANSITION"
    DUPLICATE_APPLICATION = "DUPLICATE_APPLICATION"
    BACKEND_TRANSACTION_FAILED = "BACKEND_TRANSACTION_FAILED"
    INVALID_ID = "INVALID_ID"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class OccurrenceNotFoundError(DomainError):
    """Raised when a class occurrence does not exist."""

    def __init__(self, occurrence_id: str) -> None:
        super().__init__(
            code=ErrorCode.OCCURRENCE_NOT_FOUND,
            message="Class occurrence not found",
        )
        self.occurrence_id = occurrence_id


class OccurrenceNotBookableError(DomainError):
    """Raised when booking an occurrence that is cancelled or completed."""

    def __init__(self, occurrence_id: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.OCCURRENCE_NOT_BOOKABLE,
            message=f"Class is not available for booking (status: {status})",
        )
        self.occurrence_id = occurrence_id


class RegistrationNotFoundError(DomainError):
    """Raised when a registration does not exist."""

    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message="Registration not found",
        )
        self.registration_id = registration_id


class AlreadyRegisteredError(DomainError):
    """Raised when a customer already holds a live registration for the class."""

    def __init__(self, occurrence_id: str, customer_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="Customer is already registered for this class",
        )
        self.occurrence_id = occurrence_id
        self.customer_id = customer_id


class CapacityExceededError(DomainError):
    """Raised when the class is full and waitlisting was not allowed."""

    def __init__(self, occurrence_id: str) -> None:
        super().__init__(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message="Class is full",
        )
        self.occurrence_id = occurrence_id


class PaymentInstrumentInsufficientError(DomainError):
    """Raised when a wallet or pass cannot cover the booking."""

    def __init__(self, method: str, customer_id: str, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_INSTRUMENT_INSUFFICIENT,
            message=detail or f"Payment method '{method}' cannot cover this booking",
        )
        self.method = method
        self.customer_id = customer_id


class InvalidBookingTransitionError(DomainError):
    """Raised when a booking flow step is taken out of order."""

    def __init__(self, current: str, attempted: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_BOOKING_TRANSITION,
            message=f"Cannot {attempted} while booking is {current}",
        )
        self.current = current


class DuplicateApplicationError(DomainError):
    """Raised when a credit or refund was already applied for a reference."""

    def __init__(self, reference_id: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_APPLICATION,
            message="Already applied for this registration",
        )
        self.reference_id = reference_id


class BackendTransactionError(DomainError):
    """Raised when the storage transaction fails. Safe to retry explicitly."""

    def __init__(self, operation: str, **context: str) -> None:
        super().__init__(
            code=ErrorCode.BACKEND_TRANSACTION_FAILED,
            message=f"Could not complete {operation}, please try again",
        )
        self.operation = operation
        self.context = context


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, field: str = "id") -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {field} format",
        )
