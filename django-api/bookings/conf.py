"""Commerce settings with defaults, read from ``settings.STUDIO_COMMERCE``."""

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    "CURRENCY": "CHF",
    "PROCESSING_FEE": "2.50",
    "WAITLIST_AUTO_PROMOTE": True,
}


@dataclass(frozen=True)
class CommerceSettings:
    currency: str
    processing_fee: Decimal
    waitlist_auto_promote: bool


def commerce_settings() -> CommerceSettings:
    merged = {**DEFAULTS, **getattr(settings, "STUDIO_COMMERCE", {})}
    return CommerceSettings(
        currency=merged["CURRENCY"],
        processing_fee=Decimal(str(merged["PROCESSING_FEE"])),
        waitlist_auto_promote=bool(merged["WAITLIST_AUTO_PROMOTE"]),
    )
