# promotions/views.py

"""
PROMOTIONS

Public (AllowAny):
- GET /api/promotions/public/                active promotions (+ item counts)
- GET /api/promotions/public/<slug-or-id>/   promotion + its active items, priced

Staff (promotions.edit):
- CRUD /api/promotions/
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.serializers import ItemSerializer
from common.errors import NotFoundError
from permissions.roles import CAP_PROMOTIONS_EDIT, HasCapability
from promotions.models import Promotion
from promotions.serializers import PromotionSerializer
from promotions.services.promotion_service import (
    get_active_promotions,
    get_promotion_by_slug,
    get_promotion_items,
)


class PromotionViewSet(viewsets.ModelViewSet):
    queryset = Promotion.objects.all().prefetch_related("products", "services")
    serializer_class = PromotionSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PROMOTIONS_EDIT
    filterset_fields = ["status", "discount_type", "business"]


class PublicPromotionListView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(responses={200: PromotionSerializer(many=True)})
    def get(self, request):
        promotions = get_active_promotions()
        data = PromotionSerializer(promotions, many=True).data
        return Response({"count": len(data), "results": data})


class PublicPromotionDetailView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        responses={
            200: OpenApiResponse(description="Promotion + priced items"),
            404: OpenApiResponse(description="Promotion not found"),
        }
    )
    def get(self, request, slug):
        promotion = get_promotion_by_slug(slug)
        if promotion is None or promotion.status != Promotion.STATUS_ACTIVE:
            raise NotFoundError("Promotion")

        items = get_promotion_items(promotion)
        return Response(
            {
                "promotion": PromotionSerializer(promotion).data,
                "items": ItemSerializer(items, many=True, context={"promotions": [promotion]}).data,
            }
        )
