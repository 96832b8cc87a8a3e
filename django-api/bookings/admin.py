from django.contrib import admin

from bookings.models import (
    ClassOccurrence,
    Membership,
    Pass,
    RefundOrder,
    Registration,
    Wallet,
    WalletTransaction,
)


class RegistrationInline(admin.TabularInline):
    model = Registration
    extra = 0
    fields = ["customer_id", "status", "payment_method", "amount_paid", "waitlist_priority"]
    readonly_fields = fields


class WalletTransactionInline(admin.TabularInline):
    model = WalletTransaction
    extra = 0
    readonly_fields = ["kind", "amount", "reason", "reference_type", "reference_id", "created_at"]


@admin.register(ClassOccurrence)
class ClassOccurrenceAdmin(admin.ModelAdmin):
    list_display = ["name", "starts_at", "capacity", "booked_count", "waitlist_count", "status"]
    list_filter = ["status", "class_type"]
    search_fields = ["name"]
    inlines = [RegistrationInline]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ["customer_id", "occurrence", "status", "payment_method", "amount_paid", "booked_at"]
    list_filter = ["status", "payment_method"]


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ["customer_id", "org_id", "balance", "currency", "is_active"]
    readonly_fields = ["balance"]
    inlines = [WalletTransactionInline]


@admin.register(Pass)
class PassAdmin(admin.ModelAdmin):
    list_display = ["name", "customer_id", "credits_total", "credits_used", "valid_until", "is_active"]
    readonly_fields = ["credits_used"]


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ["name", "customer_id", "valid_until", "is_active"]


@admin.register(RefundOrder)
class RefundOrderAdmin(admin.ModelAdmin):
    list_display = ["registration", "amount", "currency", "created_at"]
