# ledger/views.py

"""
LEDGER VIEWS (staff)

ledger.view:
- GET /api/ledger/entries/?entry_type=&status=&order=&booking=&payment_id=&start_date=&end_date=&limit=
- GET /api/ledger/entries/<id>/
- GET /api/ledger/derived/?entry_type=&start_date=&end_date=&limit=
- GET /api/ledger/reconciliation/?start_date=&end_date=

ledger.post:
- POST /api/ledger/entries/                 manual adjustment
- POST /api/ledger/entries/<id>/reverse/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.dates import day_bounds, parse_date_param
from ledger.models import LedgerEntry
from ledger.serializers import AdjustmentSerializer, DerivedTransactionSerializer, LedgerEntrySerializer
from ledger.services.ledger_service import (
    create_ledger_entry,
    get_derived_transactions,
    get_ledger_entries,
    get_ledger_entry_by_id,
    reconcile_ledger,
    reverse_ledger_entry,
)
from permissions.roles import CAP_LEDGER_POST, CAP_LEDGER_VIEW, HasCapability

DATE_PARAMETERS = [
    OpenApiParameter("start_date", str, required=False, description="YYYY-MM-DD"),
    OpenApiParameter("end_date", str, required=False, description="YYYY-MM-DD"),
]


def _window(params):
    start, end = day_bounds(
        parse_date_param(params.get("start_date"), "start_date"),
        parse_date_param(params.get("end_date"), "end_date"),
    )
    return start, end


def _limit(params, default=100):
    raw = params.get("limit")
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return max(1, min(value, 500))


class LedgerEntryViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, HasCapability]

    def get_permissions(self):
        self.required_capability = CAP_LEDGER_POST if self.action in {"create", "reverse"} else CAP_LEDGER_VIEW
        return super().get_permissions()

    @extend_schema(
        parameters=[
            OpenApiParameter("entry_type", str, required=False),
            OpenApiParameter("status", str, required=False),
            OpenApiParameter("order", str, required=False),
            OpenApiParameter("booking", str, required=False),
            OpenApiParameter("payment_id", str, required=False),
            OpenApiParameter("limit", int, required=False),
            *DATE_PARAMETERS,
        ]
    )
    def list(self, request):
        params = request.query_params
        start, end = _window(params)
        entries = get_ledger_entries(
            entry_type=params.get("entry_type") or None,
            status=params.get("status") or None,
            order_id=params.get("order") or None,
            booking_id=params.get("booking") or None,
            payment_id=params.get("payment_id") or None,
            start_date=start,
            end_date=end,
            limit=_limit(params),
        )
        return Response(LedgerEntrySerializer(entries, many=True).data)

    @extend_schema(responses={200: LedgerEntrySerializer})
    def retrieve(self, request, pk=None):
        return Response(LedgerEntrySerializer(get_ledger_entry_by_id(pk)).data)

    @extend_schema(request=AdjustmentSerializer, responses={201: LedgerEntrySerializer})
    def create(self, request):
        serializer = AdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        entry = create_ledger_entry(
            entry_type=LedgerEntry.TYPE_ADJUSTMENT,
            amount=data["amount"],
            direction=data["direction"],
            currency=data["currency"],
            description=data["description"],
            metadata={"created_by": str(request.user.id)},
        )
        return Response(LedgerEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={201: LedgerEntrySerializer})
    @action(detail=True, methods=["post"])
    def reverse(self, request, pk=None):
        reason = str(request.data.get("reason") or "")
        reversal = reverse_ledger_entry(get_ledger_entry_by_id(pk), reason)
        return Response(LedgerEntrySerializer(reversal).data, status=status.HTTP_201_CREATED)


class DerivedTransactionsView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_LEDGER_VIEW

    @extend_schema(
        parameters=[
            OpenApiParameter("entry_type", str, required=False),
            OpenApiParameter("limit", int, required=False),
            *DATE_PARAMETERS,
        ],
        responses={200: DerivedTransactionSerializer(many=True)},
    )
    def get(self, request):
        params = request.query_params
        start, end = _window(params)
        rows = get_derived_transactions(
            entry_type=params.get("entry_type") or None,
            start_date=start,
            end_date=end,
            limit=_limit(params),
        )
        return Response(DerivedTransactionSerializer(rows, many=True).data)


class ReconciliationView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_LEDGER_VIEW

    @extend_schema(parameters=DATE_PARAMETERS)
    def get(self, request):
        start, end = _window(request.query_params)
        return Response(reconcile_ledger(start_date=start, end_date=end))
