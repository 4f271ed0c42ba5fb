# orders/views.py

"""
ORDER VIEWS

Customers (authenticated):
- GET  /api/orders/                       own orders (cursor paged)
- POST /api/orders/                       checkout (explicit items or the cart)
- GET  /api/orders/<id>/                  own order
- POST /api/orders/<id>/cancel/           cancel own order
- GET  /api/orders/<id>/confirmation/     order-confirmed payload

Staff (orders.manage):
- list/retrieve any order
- POST /api/orders/<id>/status/           status change (transition table)
- POST /api/orders/<id>/refund/           paid -> refunded + ledger reversal

Public:
- GET  /api/orders/number/<order_number>/?email=   guest lookup
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from carts.services.cart_service import get_active_cart
from common.errors import NotFoundError
from orders.serializers import (
    CheckoutSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    ReasonSerializer,
)
from orders.services.order_service import (
    cancel_order,
    create_order,
    create_order_from_cart,
    get_order_by_id,
    get_order_by_number,
    get_orders,
    order_confirmation,
    refund_order,
    update_order,
)
from permissions.roles import CAP_ORDERS_MANAGE, HasCapability, user_has_capability


class PublicPollThrottle(AnonRateThrottle):
    scope = "public_poll"


def _is_manager(user) -> bool:
    return user_has_capability(user, CAP_ORDERS_MANAGE)


def _visible_order(request, pk):
    """Own order, or any order for staff. Others look missing."""
    order = get_order_by_id(pk)
    if not _is_manager(request.user) and order.customer_id != request.user.id:
        raise NotFoundError("Order")
    return order


class OrderViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action in {"set_status", "refund"}:
            self.required_capability = CAP_ORDERS_MANAGE
            return [IsAuthenticated(), HasCapability()]
        return super().get_permissions()

    @extend_schema(
        parameters=[
            OpenApiParameter("status", str, required=False),
            OpenApiParameter("customer_email", str, required=False),
            OpenApiParameter("limit", int, required=False),
            OpenApiParameter("last_doc_id", str, required=False),
        ]
    )
    def list(self, request):
        params = request.query_params
        filters = {
            "status": params.get("status") or None,
            "limit": params.get("limit") or 20,
            "last_doc_id": params.get("last_doc_id") or None,
        }
        if _is_manager(request.user):
            filters["customer_email"] = params.get("customer_email") or None
            filters["business_id"] = params.get("business") or None
        else:
            filters["customer_id"] = request.user.id

        page = get_orders(**filters)
        return Response(
            {
                "orders": OrderSerializer(page["orders"], many=True).data,
                "last_doc_id": page["last_doc_id"],
                "has_more": page["has_more"],
            }
        )

    @extend_schema(request=CheckoutSerializer, responses={201: OrderSerializer})
    def create(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        contact = {k: data[k] for k in ("email", "name", "phone") if data.get(k)}
        options = {
            "contact": contact,
            "customer": request.user,
            "shipping_address": data.get("shipping_address") or None,
            "notes": data.get("notes", ""),
        }

        if data.get("items"):
            order = create_order(lines=data["items"], **options)
        else:
            order = create_order_from_cart(get_active_cart(request.user), **options)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: OrderSerializer})
    def retrieve(self, request, pk=None):
        return Response(OrderSerializer(_visible_order(request, pk)).data)

    @extend_schema(request=ReasonSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        order = _visible_order(request, pk)
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = cancel_order(order.id, serializer.validated_data["reason"])
        return Response(OrderSerializer(order).data)

    @extend_schema(responses={200: OpenApiResponse(description="Order confirmation payload")})
    @action(detail=True, methods=["get"])
    def confirmation(self, request, pk=None):
        return Response(order_confirmation(_visible_order(request, pk)))

    @extend_schema(request=OrderStatusSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = update_order(pk, **serializer.validated_data)
        return Response(OrderSerializer(order).data)

    @extend_schema(request=ReasonSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = refund_order(pk, serializer.validated_data["reason"])
        return Response(OrderSerializer(order).data)


class PublicOrderLookupView(APIView):
    """Guests look up an order by number; the email must match."""

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicPollThrottle]

    @extend_schema(parameters=[OpenApiParameter("email", str, required=True)])
    def get(self, request, order_number):
        order = get_order_by_number(order_number)
        email = (request.query_params.get("email") or "").strip().lower()
        if order is None or not email or order.customer_email != email:
            raise NotFoundError("Order")
        return Response(order_confirmation(order))
