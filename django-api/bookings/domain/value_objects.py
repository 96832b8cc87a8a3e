"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID

CENTS = Decimal("0.01")


def quantize(amount: Decimal | int | str) -> Decimal:
    """Round a monetary amount to two decimal places."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class _Identifier:
    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class OccurrenceId(_Identifier):
    """Unique identifier for a ClassOccurrence."""


@dataclass(frozen=True)
class RegistrationId(_Identifier):
    """Unique identifier for a Registration."""


@dataclass(frozen=True)
class CustomerId(_Identifier):
    """Unique identifier for a customer profile."""


@dataclass(frozen=True)
class OrganizationId(_Identifier):
    """Unique identifier for a studio organization (tenant)."""


@dataclass(frozen=True)
class PassId(_Identifier):
    """Unique identifier for a Pass."""


@dataclass(frozen=True)
class Money:
    """Non-negative amount in the organization's currency."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")
        object.__setattr__(self, "amount", quantize(self.amount))

    @classmethod
    def zero(cls) -> Self:
        return cls(amount=Decimal("0"))

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")
