# carts/serializers.py

from rest_framework import serializers


class AddCartItemSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    selected_variants = serializers.DictField(child=serializers.CharField(), required=False, default=dict)


class UpdateCartItemSerializer(serializers.Serializer):
    # zero or negative removes the line
    quantity = serializers.IntegerField()
