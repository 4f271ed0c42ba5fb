# payments/serializers.py

from rest_framework import serializers

from payments.models import Payment


class InitiatePaymentSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(required=False)
    booking_id = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if bool(attrs.get("order_id")) == bool(attrs.get("booking_id")):
            raise serializers.ValidationError("Provide either order_id or booking_id")
        return attrs


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "order",
            "booking",
            "provider",
            "tx_ref",
            "amount",
            "currency",
            "status",
            "checkout_url",
            "provider_reference",
            "failure_reason",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields
