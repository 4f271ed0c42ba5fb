# ledger/serializers.py

from rest_framework import serializers

from ledger.models import LedgerEntry


class LedgerEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "entry_type",
            "direction",
            "status",
            "amount",
            "currency",
            "order",
            "booking",
            "payment_id",
            "description",
            "metadata",
            "reversal_of",
            "created_at",
        ]
        read_only_fields = fields


class AdjustmentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    direction = serializers.ChoiceField(choices=[LedgerEntry.CREDIT, LedgerEntry.DEBIT])
    currency = serializers.CharField(required=False, default="MWK")
    description = serializers.CharField(max_length=255)


class DerivedTransactionSerializer(serializers.Serializer):
    id = serializers.CharField()
    entry_type = serializers.CharField()
    status = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    currency = serializers.CharField()
    order_id = serializers.CharField(allow_null=True)
    booking_id = serializers.CharField(allow_null=True)
    payment_id = serializers.CharField()
    description = serializers.CharField()
    created_at = serializers.DateTimeField()
    source = serializers.CharField()
    metadata = serializers.DictField()
