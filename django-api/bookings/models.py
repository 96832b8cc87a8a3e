"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
Customers and organizations are owned by the auth platform and referenced by UUID.
"""

import uuid

from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class ClassOccurrence(models.Model):
    """Persistence model for a scheduled class session."""

    class Status(models.TextChoices):
        SCHEDULED = "scheduled"
        CANCELLED = "cancelled"
        COMPLETED = "completed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org_id = models.UUIDField()
    name = models.CharField(max_length=255)
    class_type = models.CharField(max_length=100, blank=True)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    capacity = models.PositiveIntegerField()
    booked_count = models.PositiveIntegerField(default=0)
    waitlist_count = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SCHEDULED)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["org_id", "starts_at"], name="occurrence_org_start_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(booked_count__lte=F("capacity")),
                name="occurrence_booked_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.starts_at}"


class Pass(models.Model):
    """Persistence model for prepaid class credit bundles."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_id = models.UUIDField()
    org_id = models.UUIDField()
    name = models.CharField(max_length=255)
    credits_total = models.PositiveIntegerField()
    credits_used = models.PositiveIntegerField(default=0)
    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    class_types = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "passes"
        indexes = [
            models.Index(fields=["customer_id", "org_id"], name="pass_customer_org_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(credits_used__lte=F("credits_total")),
                name="pass_credits_within_total",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.credits_total - self.credits_used} left)"


class PassUsage(models.Model):
    """One pass credit spent on one occurrence."""

    class_pass = models.ForeignKey(Pass, on_delete=models.CASCADE, related_name="usages")
    occurrence_id = models.UUIDField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["class_pass", "occurrence_id"], name="unique_pass_usage_per_occurrence"
            ),
        ]


class Membership(models.Model):
    """Persistence model for recurring memberships."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_id = models.UUIDField()
    org_id = models.UUIDField()
    name = models.CharField(max_length=255)
    valid_until = models.DateTimeField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    class_types = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer_id", "org_id"], name="membership_customer_org_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class Registration(models.Model):
    """Persistence model for a customer's booking of one occurrence."""

    class Status(models.TextChoices):
        PENDING = "pending"
        CONFIRMED = "confirmed"
        WAITLISTED = "waitlisted"
        CANCELLED = "cancelled"
        NO_SHOW = "no_show"
        REFUNDED = "refunded"
        ATTENDED = "attended"

    TERMINAL_STATUSES = (Status.CANCELLED, Status.REFUNDED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org_id = models.UUIDField()
    customer_id = models.UUIDField()
    occurrence = models.ForeignKey(
        ClassOccurrence, on_delete=models.PROTECT, related_name="registrations"
    )
    status = models.CharField(max_length=20, choices=Status.choices)
    payment_method = models.CharField(max_length=20)
    class_pass = models.ForeignKey(
        Pass, on_delete=models.PROTECT, related_name="registrations", blank=True, null=True
    )
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    booked_at = models.DateTimeField(default=timezone.now)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    notes = models.TextField(blank=True)
    waitlist_priority = models.PositiveIntegerField(blank=True, null=True)
    auto_promote = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["booked_at"]
        indexes = [
            models.Index(fields=["occurrence", "status"], name="registration_occ_status_idx"),
            models.Index(fields=["customer_id", "org_id"], name="registration_customer_org_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["occurrence", "customer_id"],
                condition=~Q(status__in=["cancelled", "refunded"]),
                name="unique_live_registration",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.customer_id} - {self.occurrence_id} ({self.status})"


class Wallet(models.Model):
    """Persistence model for a customer's balance within one organization."""

    customer_id = models.UUIDField()
    org_id = models.UUIDField()
    balance = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=3)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["customer_id", "org_id"], name="unique_wallet_per_org"),
            models.CheckConstraint(condition=Q(balance__gte=0), name="wallet_balance_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.customer_id} {self.balance} {self.currency}"


class WalletTransaction(models.Model):
    """Append-only record of every wallet balance change."""

    class Kind(models.TextChoices):
        CREDIT = "credit"
        DEBIT = "debit"

    wallet = models.ForeignKey(Wallet, on_delete=models.PROTECT, related_name="transactions")
    kind = models.CharField(max_length=10, choices=Kind.choices)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    reason = models.CharField(max_length=255)
    reference_type = models.CharField(max_length=50)
    reference_id = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["reference_type", "reference_id", "kind"],
                name="unique_wallet_transaction_per_reference",
            ),
        ]


class RefundOrder(models.Model):
    """Negative-amount order representing a cash refund."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration = models.OneToOneField(
        Registration, on_delete=models.PROTECT, related_name="refund_order"
    )
    customer_id = models.UUIDField()
    org_id = models.UUIDField()
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=20, default="refunded")
    payment_method = models.CharField(max_length=20, default="refund")
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(amount__lt=0), name="refund_amount_negative"),
        ]

    def __str__(self) -> str:
        return f"Refund {self.amount} {self.currency} for {self.registration_id}"
