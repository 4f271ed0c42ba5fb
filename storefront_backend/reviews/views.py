# reviews/views.py

"""
REVIEW VIEWS

Public:
- GET  /api/reviews/?item=&business=&review_type=&limit=&last_doc_id=   approved reviews
- POST /api/reviews/                    signed-in customers or guests (name + email + reCAPTCHA)
- GET  /api/reviews/summary/?item= | ?business=
- GET  /api/reviews/reviewed/?item=&business=&review_type=&email=

Moderation (reviews.moderate):
- POST   /api/reviews/<id>/status/
- DELETE /api/reviews/<id>/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from businesses.services.business_service import get_business_by_id
from catalog.services.item_service import get_item_by_id
from common.errors import ValidationError
from permissions.roles import CAP_REVIEWS_MODERATE, HasCapability, user_has_capability
from reviews.models import Review
from reviews.serializers import CreateReviewSerializer, ReviewSerializer, ReviewStatusSerializer
from reviews.services.review_service import (
    create_review,
    delete_review,
    get_reviews,
    has_user_reviewed,
    rating_summary,
    set_review_status,
)
from security.recaptcha import verify_recaptcha


class PublicWriteThrottle(AnonRateThrottle):
    scope = "public_write"


class ReviewViewSet(viewsets.ViewSet):
    permission_classes = [AllowAny]

    def get_permissions(self):
        if self.action in {"set_status", "destroy"}:
            self.required_capability = CAP_REVIEWS_MODERATE
            return [IsAuthenticated(), HasCapability()]
        return super().get_permissions()

    def get_throttles(self):
        if self.action == "create":
            return [PublicWriteThrottle()]
        return super().get_throttles()

    @extend_schema(
        parameters=[
            OpenApiParameter("item", str, required=False),
            OpenApiParameter("business", str, required=False),
            OpenApiParameter("review_type", str, required=False, enum=["item", "business"]),
            OpenApiParameter("status", str, required=False, description="Moderators only"),
            OpenApiParameter("limit", int, required=False),
            OpenApiParameter("last_doc_id", str, required=False),
        ]
    )
    def list(self, request):
        params = request.query_params
        review_status = Review.STATUS_APPROVED
        if user_has_capability(request.user, CAP_REVIEWS_MODERATE):
            review_status = params.get("status") or None

        page = get_reviews(
            item_id=params.get("item") or None,
            business_id=params.get("business") or None,
            review_type=params.get("review_type") or None,
            status=review_status,
            limit=params.get("limit") or None,
            last_doc_id=params.get("last_doc_id") or None,
        )
        return Response(
            {
                "reviews": ReviewSerializer(page["reviews"], many=True).data,
                "last_doc_id": page["last_doc_id"],
                "has_more": page["has_more"],
            }
        )

    @extend_schema(request=CreateReviewSerializer, responses={201: ReviewSerializer})
    def create(self, request):
        serializer = CreateReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = request.user if request.user.is_authenticated else None
        if user is None and not verify_recaptcha(data["recaptcha_token"]):
            raise ValidationError("reCAPTCHA verification failed", "recaptcha_token")

        review = create_review(
            review_type=data["review_type"],
            item_id=data.get("item_id"),
            business_id=data.get("business_id"),
            rating=data["rating"],
            comment=data["comment"],
            user=user,
            user_name=data["user_name"],
            user_email=data["user_email"],
            order_id=data.get("order_id"),
            booking_id=data.get("booking_id"),
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        parameters=[
            OpenApiParameter("item", str, required=False),
            OpenApiParameter("business", str, required=False),
        ]
    )
    @action(detail=False, methods=["get"])
    def summary(self, request):
        item_id = request.query_params.get("item")
        business_id = request.query_params.get("business")
        if item_id:
            return Response(rating_summary(get_item_by_id(item_id)))
        if business_id:
            return Response(rating_summary(business=get_business_by_id(business_id)))
        raise ValidationError("item or business is required")

    @extend_schema(
        parameters=[
            OpenApiParameter("item", str, required=False),
            OpenApiParameter("business", str, required=False),
            OpenApiParameter("review_type", str, required=False, enum=["item", "business"]),
            OpenApiParameter("email", str, required=False),
        ]
    )
    @action(detail=False, methods=["get"])
    def reviewed(self, request):
        params = request.query_params
        user = request.user if request.user.is_authenticated else None
        reviewed = has_user_reviewed(
            user_id=user.id if user else None,
            user_email=user.email if user else params.get("email"),
            item_id=params.get("item") or None,
            business_id=params.get("business") or None,
            review_type=params.get("review_type") or Review.TYPE_ITEM,
        )
        return Response({"reviewed": reviewed})

    @extend_schema(request=ReviewStatusSerializer, responses={200: ReviewSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = ReviewStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = set_review_status(pk, serializer.validated_data["status"])
        return Response(ReviewSerializer(review).data)

    def destroy(self, request, pk=None):
        delete_review(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
