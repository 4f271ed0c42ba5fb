# reviews/serializers.py

from rest_framework import serializers

from reviews.models import Review


class ReviewSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source="item.name", read_only=True, default=None)

    class Meta:
        model = Review
        fields = [
            "id",
            "review_type",
            "business",
            "item",
            "item_name",
            "user",
            "user_name",
            "rating",
            "comment",
            "order",
            "booking",
            "status",
            "created_at",
        ]
        read_only_fields = fields


class CreateReviewSerializer(serializers.Serializer):
    review_type = serializers.ChoiceField(choices=Review.TYPE_CHOICES, default=Review.TYPE_ITEM)
    item_id = serializers.UUIDField(required=False, allow_null=True)
    business_id = serializers.UUIDField(required=False, allow_null=True)
    rating = serializers.IntegerField()
    comment = serializers.CharField(allow_blank=True, trim_whitespace=False)
    user_name = serializers.CharField(required=False, allow_blank=True, default="")
    user_email = serializers.CharField(required=False, allow_blank=True, default="")
    order_id = serializers.UUIDField(required=False, allow_null=True)
    booking_id = serializers.UUIDField(required=False, allow_null=True)
    recaptcha_token = serializers.CharField(required=False, allow_blank=True, default="")


class ReviewStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Review.STATUS_CHOICES)
