# analytics/views.py

"""
GET /api/analytics/dashboard/?range=7d|30d|90d&business=<uuid>

Capability: analytics.view
Money values are net of the default transaction fee unless named gross.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from analytics.services.dashboard import build_dashboard
from common.validation import parse_uuid
from permissions.roles import CAP_ANALYTICS_VIEW, HasCapability


class DashboardView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ANALYTICS_VIEW

    @extend_schema(
        parameters=[
            OpenApiParameter("range", str, required=False, enum=["7d", "30d", "90d"]),
            OpenApiParameter("business", str, required=False),
        ]
    )
    def get(self, request):
        date_range = request.query_params.get("range") or "30d"
        business_id = parse_uuid(request.query_params.get("business"))
        return Response(build_dashboard(date_range=date_range, business_id=business_id))
