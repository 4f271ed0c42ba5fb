from rest_framework import serializers

from businesses.models import Business
from businesses.services.business_service import business_contact_links


class BusinessSerializer(serializers.ModelSerializer):
    contact_links = serializers.SerializerMethodField()

    class Meta:
        model = Business
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "logo_url",
            "contact_email",
            "contact_phone",
            "whatsapp_number",
            "address",
            "website",
            "currency",
            "tax_rate",
            "delivery_fee",
            "is_active",
            "contact_links",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {"slug": {"required": False}}

    def get_contact_links(self, obj) -> dict:
        return business_contact_links(obj)
