from rest_framework import serializers

from businesses.models import Business
from catalog.models import Category, Item
from pricing.breakdown import price_item
from promotions.services.promotion_rules import discount_label, find_item_promotion


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "slug", "description", "is_active", "created_at"]
        read_only_fields = ["id", "created_at"]
        extra_kwargs = {"slug": {"required": False}}


class ItemSerializer(serializers.ModelSerializer):
    """
    Read representation. `pricing` is computed server-side; pass the active
    promotions in context["promotions"] to get promotion-aware prices.
    """

    categories = CategorySerializer(many=True, read_only=True)
    pricing = serializers.SerializerMethodField()

    class Meta:
        model = Item
        fields = [
            "id",
            "business",
            "type",
            "status",
            "name",
            "slug",
            "description",
            "images",
            "categories",
            "is_featured",
            "base_price",
            "compare_at_price",
            "currency",
            "include_transaction_fee",
            "transaction_fee_rate",
            "stock_quantity",
            "duration_minutes",
            "booking_fee",
            "seo_title",
            "seo_description",
            "seo_keywords",
            "pricing",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_pricing(self, obj) -> dict:
        promotion = find_item_promotion(obj, self.context.get("promotions") or [])
        data = price_item(obj, promotion).as_dict()
        data["promotion_label"] = discount_label(promotion) if promotion else None
        return data


class ItemWriteSerializer(serializers.Serializer):
    """Input for create/update; persistence goes through catalog services."""

    business = serializers.PrimaryKeyRelatedField(queryset=Business.objects.all(), required=False)
    type = serializers.ChoiceField(choices=Item.TYPE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=Item.STATUS_CHOICES, required=False)
    name = serializers.CharField(max_length=255, required=False)
    slug = serializers.SlugField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    images = serializers.ListField(child=serializers.DictField(), required=False)
    categories = serializers.PrimaryKeyRelatedField(
        many=True, queryset=Category.objects.all(), required=False
    )
    is_featured = serializers.BooleanField(required=False)
    base_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    compare_at_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    currency = serializers.CharField(max_length=10, required=False)
    include_transaction_fee = serializers.BooleanField(required=False)
    transaction_fee_rate = serializers.DecimalField(
        max_digits=5, decimal_places=4, min_value=0, max_value=1, required=False, allow_null=True
    )
    stock_quantity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    duration_minutes = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    booking_fee = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    seo_title = serializers.CharField(max_length=255, required=False, allow_blank=True)
    seo_description = serializers.CharField(required=False, allow_blank=True)
    seo_keywords = serializers.ListField(child=serializers.CharField(), required=False)
