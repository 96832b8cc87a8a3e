"""Result objects returned by services to callers."""

from dataclasses import dataclass, field

from bookings.domain import ClassOccurrence, RefundBreakdown, RegistrationId
from bookings.domain.errors import DomainError


@dataclass(frozen=True)
class RefundResult:
    registration_id: RegistrationId
    breakdown: RefundBreakdown
    applied: bool


@dataclass(frozen=True)
class ItemFailure:
    """One item of a batch that could not be processed."""

    item_id: str
    code: str
    message: str

    @classmethod
    def from_exception(cls, item_id: str, exc: Exception) -> "ItemFailure":
        if isinstance(exc, DomainError):
            return cls(item_id=item_id, code=exc.code.value, message=exc.message)
        return cls(item_id=item_id, code="UNEXPECTED_ERROR", message="Unexpected error")


@dataclass
class BulkResult:
    successful: int = 0
    failed: int = 0
    failures: list[ItemFailure] = field(default_factory=list)

    def record_success(self) -> None:
        self.successful += 1

    def record_failure(self, failure: ItemFailure) -> None:
        self.failed += 1
        self.failures.append(failure)


@dataclass(frozen=True)
class OccurrenceCancellationResult:
    occurrence: ClassOccurrence
    affected_registrations: int
    refunds: BulkResult
