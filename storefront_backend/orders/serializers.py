# orders/serializers.py

from rest_framework import serializers

from orders.models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "name",
            "image",
            "quantity",
            "unit_price",
            "discount",
            "subtotal",
            "selected_variants",
            "promotion_id",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "business",
            "customer",
            "customer_email",
            "customer_name",
            "customer_phone",
            "shipping_address",
            "status",
            "subtotal",
            "discount",
            "shipping",
            "tax",
            "transaction_fee",
            "total",
            "currency",
            "notes",
            "items",
            "paid_at",
            "processing_at",
            "shipped_at",
            "completed_at",
            "canceled_at",
            "canceled_reason",
            "refunded_at",
            "refund_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# =====================================================
# INPUT
# =====================================================
class OrderLineInputSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    selected_variants = serializers.DictField(child=serializers.CharField(), required=False, default=dict)


class CheckoutSerializer(serializers.Serializer):
    """Omit `items` to check out the caller's cart."""

    items = OrderLineInputSerializer(many=True, required=False)
    email = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)
    shipping_address = serializers.DictField(required=False, default=dict)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OrderStatusSerializer(serializers.Serializer):
    # refunds go through the refund action
    status = serializers.ChoiceField(
        choices=[c[0] for c in Order.STATUS_CHOICES if c[0] != Order.STATUS_REFUNDED]
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
