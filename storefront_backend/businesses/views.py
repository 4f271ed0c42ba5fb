# businesses/views.py

"""
BUSINESS VIEWSET

Staff (admin only):
- CRUD

Public (AllowAny):
- GET /api/businesses/public/   active businesses
- GET /api/businesses/default/  the storefront's business (+ contact links)
"""

from drf_spectacular.utils import extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from businesses.models import Business
from businesses.serializers import BusinessSerializer
from businesses.services.business_service import get_default_business
from permissions.roles import IsAdmin


class BusinessViewSet(viewsets.ModelViewSet):
    queryset = Business.objects.all().order_by("created_at")
    serializer_class = BusinessSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    @action(detail=False, methods=["get"], url_path="public", permission_classes=[AllowAny])
    def public(self, request):
        qs = Business.objects.filter(is_active=True).order_by("created_at")
        data = BusinessSerializer(qs, many=True).data
        return Response({"count": len(data), "results": data})

    @extend_schema(responses={200: BusinessSerializer})
    @action(detail=False, methods=["get"], url_path="default", permission_classes=[AllowAny])
    def default(self, request):
        return Response(BusinessSerializer(get_default_business()).data)
