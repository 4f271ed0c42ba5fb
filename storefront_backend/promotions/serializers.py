from rest_framework import serializers

from catalog.models import Item
from common.validation import full_clean_or_raise
from promotions.models import Promotion
from promotions.services.promotion_rules import discount_label
from promotions.services.promotion_service import promotion_item_count


class PromotionSerializer(serializers.ModelSerializer):
    products = serializers.PrimaryKeyRelatedField(
        many=True,
        queryset=Item.objects.filter(type=Item.TYPE_PRODUCT),
        required=False,
    )
    services = serializers.PrimaryKeyRelatedField(
        many=True,
        queryset=Item.objects.filter(type=Item.TYPE_SERVICE),
        required=False,
    )
    discount_label = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Promotion
        fields = [
            "id",
            "business",
            "name",
            "slug",
            "description",
            "image_url",
            "discount",
            "discount_type",
            "discount_label",
            "status",
            "start_date",
            "end_date",
            "products",
            "services",
            "item_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {"slug": {"required": False}}

    def get_discount_label(self, obj) -> str:
        return discount_label(obj)

    def get_item_count(self, obj) -> int:
        return promotion_item_count(obj)

    def validate(self, attrs):
        # model.clean() covers date order and the percentage ceiling
        m2m = {key: attrs.pop(key) for key in ("products", "services") if key in attrs}
        probe = Promotion(**{**self._current_values(), **attrs})
        full_clean_or_raise(probe, exclude=["slug"])
        attrs.update(m2m)
        return attrs

    def _current_values(self) -> dict:
        if self.instance is None:
            return {}
        return {
            f.name: getattr(self.instance, f.name)
            for f in Promotion._meta.concrete_fields
            if f.name not in ("id", "created_at", "updated_at")
        }
