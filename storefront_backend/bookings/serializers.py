# bookings/serializers.py

from rest_framework import serializers

from bookings.models import Booking
from bookings.services.booking_rules import remaining_balance


class BookingSerializer(serializers.ModelSerializer):
    remaining_balance = serializers.SerializerMethodField()
    amount_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "business",
            "service",
            "service_name",
            "service_image",
            "customer",
            "customer_email",
            "customer_name",
            "customer_phone",
            "start_time",
            "end_time",
            "status",
            "base_price",
            "discount",
            "transaction_fee",
            "tax",
            "total",
            "currency",
            "is_partial_payment",
            "booking_fee",
            "total_fee",
            "amount_due",
            "remaining_balance",
            "notes",
            "paid_at",
            "confirmed_at",
            "completed_at",
            "canceled_at",
            "canceled_reason",
            "no_show_at",
            "refunded_at",
            "refund_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_remaining_balance(self, obj) -> str:
        return str(remaining_balance(obj))


class CreateBookingSerializer(serializers.Serializer):
    service_id = serializers.UUIDField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(required=False)
    partial_payment = serializers.BooleanField(required=False, default=False)
    email = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BookingStatusSerializer(serializers.Serializer):
    # refunds go through the refund action
    status = serializers.ChoiceField(
        choices=[c[0] for c in Booking.STATUS_CHOICES if c[0] != Booking.STATUS_REFUNDED]
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class RescheduleSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
