# bookings/views.py

"""
BOOKING VIEWS

Customers (authenticated):
- GET  /api/bookings/                      own bookings
- POST /api/bookings/                      book a service time slot
- GET  /api/bookings/<id>/                 own booking
- POST /api/bookings/<id>/cancel/
- GET  /api/bookings/<id>/timeline/        status progression

Staff (bookings.manage):
- POST /api/bookings/<id>/status/
- POST /api/bookings/<id>/reschedule/
- POST /api/bookings/<id>/refund/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bookings.serializers import (
    BookingSerializer,
    BookingStatusSerializer,
    CreateBookingSerializer,
    ReasonSerializer,
    RescheduleSerializer,
)
from bookings.services.booking_rules import build_booking_timeline
from bookings.services.booking_service import (
    cancel_booking,
    create_booking,
    get_booking_by_id,
    get_bookings,
    refund_booking,
    update_booking,
)
from common.errors import NotFoundError
from permissions.roles import CAP_BOOKINGS_MANAGE, HasCapability, user_has_capability

STAFF_ACTIONS = {"set_status", "reschedule", "refund"}


def _is_manager(user) -> bool:
    return user_has_capability(user, CAP_BOOKINGS_MANAGE)


def _visible_booking(request, pk):
    booking = get_booking_by_id(pk)
    if not _is_manager(request.user) and booking.customer_id != request.user.id:
        raise NotFoundError("Booking")
    return booking


class BookingViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action in STAFF_ACTIONS:
            self.required_capability = CAP_BOOKINGS_MANAGE
            return [IsAuthenticated(), HasCapability()]
        return super().get_permissions()

    @extend_schema(
        parameters=[
            OpenApiParameter("status", str, required=False),
            OpenApiParameter("service", str, required=False),
            OpenApiParameter("customer_email", str, required=False),
            OpenApiParameter("limit", int, required=False),
            OpenApiParameter("last_doc_id", str, required=False),
        ]
    )
    def list(self, request):
        params = request.query_params
        filters = {
            "status": params.get("status") or None,
            "service_id": params.get("service") or None,
            "limit": params.get("limit") or 20,
            "last_doc_id": params.get("last_doc_id") or None,
        }
        if _is_manager(request.user):
            filters["customer_email"] = params.get("customer_email") or None
        else:
            filters["customer_id"] = request.user.id

        page = get_bookings(**filters)
        return Response(
            {
                "bookings": BookingSerializer(page["bookings"], many=True).data,
                "last_doc_id": page["last_doc_id"],
                "has_more": page["has_more"],
            }
        )

    @extend_schema(request=CreateBookingSerializer, responses={201: BookingSerializer})
    def create(self, request):
        serializer = CreateBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = create_booking(
            service_id=data["service_id"],
            start_time=data["start_time"],
            end_time=data.get("end_time"),
            partial_payment=data["partial_payment"],
            contact={k: data[k] for k in ("email", "name", "phone") if data.get(k)},
            customer=request.user,
            notes=data.get("notes", ""),
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: BookingSerializer})
    def retrieve(self, request, pk=None):
        return Response(BookingSerializer(_visible_booking(request, pk)).data)

    @extend_schema(request=ReasonSerializer, responses={200: BookingSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        booking = _visible_booking(request, pk)
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = cancel_booking(booking.id, serializer.validated_data["reason"])
        return Response(BookingSerializer(booking).data)

    @extend_schema(responses={200: OpenApiResponse(description="Booking timeline")})
    @action(detail=True, methods=["get"])
    def timeline(self, request, pk=None):
        return Response(build_booking_timeline(_visible_booking(request, pk)))

    @extend_schema(request=BookingStatusSerializer, responses={200: BookingSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(BookingSerializer(update_booking(pk, **serializer.validated_data)).data)

    @extend_schema(request=RescheduleSerializer, responses={200: BookingSerializer})
    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(BookingSerializer(update_booking(pk, **serializer.validated_data)).data)

    @extend_schema(request=ReasonSerializer, responses={200: BookingSerializer})
    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = refund_booking(pk, serializer.validated_data["reason"])
        return Response(BookingSerializer(booking).data)
