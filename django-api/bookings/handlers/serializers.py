"""Serializers for request input and domain model responses."""

from rest_framework import serializers

from bookings.domain import CancellationType


class BookingInputSerializer(serializers.Serializer):
    occurrence_id = serializers.CharField()
    customer_id = serializers.CharField()
    payment_method = serializers.CharField(max_length=64)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    allow_waitlist = serializers.BooleanField(required=False, default=True)


class RegistrationCancelInputSerializer(serializers.Serializer):
    cancellation_type = serializers.ChoiceField(
        choices=[member.value for member in CancellationType],
        default=CancellationType.CUSTOMER.value,
    )


class OccurrenceCancelInputSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True, default="")
    notify_customers = serializers.BooleanField(required=False, default=True)


class BulkCancelInputSerializer(OccurrenceCancelInputSerializer):
    occurrence_ids = serializers.ListField(child=serializers.CharField(), allow_empty=False)


class RegistrationSerializer(serializers.Serializer):
    """Serializer for Registration domain model."""

    id = serializers.CharField()
    occurrence_id = serializers.CharField()
    customer_id = serializers.CharField()
    status = serializers.CharField(source="status.value")
    payment_method = serializers.CharField(source="payment_method.value")
    amount_paid = serializers.DecimalField(
        source="amount_paid.amount", max_digits=10, decimal_places=2
    )
    booked_at = serializers.DateTimeField()
    waitlist_priority = serializers.IntegerField(allow_null=True)


class PaymentOptionSerializer(serializers.Serializer):
    """Serializer for PaymentOption domain model."""

    key = serializers.CharField()
    method = serializers.CharField(source="method.value")
    label = serializers.CharField()
    available_balance = serializers.SerializerMethodField()
    remaining_credits = serializers.IntegerField(allow_null=True)

    def get_available_balance(self, option) -> str | None:
        if option.available_balance is None:
            return None
        return str(option.available_balance)


class RefundBreakdownSerializer(serializers.Serializer):
    """Serializer for RefundBreakdown domain model."""

    original_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    refund_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    credit_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    processing_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    hours_until_class = serializers.FloatField()


class RefundResultSerializer(serializers.Serializer):
    registration_id = serializers.CharField()
    breakdown = RefundBreakdownSerializer()
    applied = serializers.BooleanField()


class ItemFailureSerializer(serializers.Serializer):
    item_id = serializers.CharField()
    code = serializers.CharField()
    message = serializers.CharField()


class BulkResultSerializer(serializers.Serializer):
    successful = serializers.IntegerField()
    failed = serializers.IntegerField()
    failures = ItemFailureSerializer(many=True)


class OccurrenceCancellationSerializer(serializers.Serializer):
    occurrence_id = serializers.CharField(source="occurrence.id")
    status = serializers.CharField(source="occurrence.status.value")
    affected_registrations = serializers.IntegerField()
    refunds = BulkResultSerializer()
