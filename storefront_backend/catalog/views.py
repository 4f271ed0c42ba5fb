# catalog/views.py

"""
CATALOG VIEWS

Staff (catalog.edit):
- /api/catalog/items/        list/create
- /api/catalog/items/<id>/   retrieve/update/delete
- /api/catalog/categories/   CRUD (reads are public)

Public (AllowAny, active items only):
- GET /api/catalog/public/items/?type=&category=&featured=&limit=&last_doc_id=
- GET /api/catalog/public/items/<id>/
- GET /api/catalog/public/items/slug/<slug>/
- GET /api/catalog/public/items/slug/<slug>/metadata/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from catalog.models import Category, Item
from catalog.serializers import CategorySerializer, ItemSerializer, ItemWriteSerializer
from catalog.services.item_service import (
    create_item,
    delete_item,
    get_item_by_id,
    get_item_by_slug,
    get_items,
    update_item,
)
from catalog.services.metadata import generate_item_metadata
from common.errors import NotFoundError
from permissions.roles import CAP_CATALOG_EDIT, CapabilityOrReadOnly, HasCapability
from promotions.services.promotion_service import get_active_promotions


class PublicCatalogThrottle(AnonRateThrottle):
    scope = "public_catalog"


def _parse_bool(value):
    if value is None or value == "":
        return None
    return str(value).strip().lower() in {"1", "true", "yes"}


def _page_response(page: dict, *, promotions) -> Response:
    return Response(
        {
            "items": ItemSerializer(page["items"], many=True, context={"promotions": promotions}).data,
            "last_doc_id": page["last_doc_id"],
            "has_more": page["has_more"],
        }
    )


LIST_PARAMETERS = [
    OpenApiParameter("type", str, required=False, enum=["product", "service"]),
    OpenApiParameter("category", str, required=False),
    OpenApiParameter("featured", bool, required=False),
    OpenApiParameter("limit", int, required=False),
    OpenApiParameter("last_doc_id", str, required=False),
]


# =====================================================
# STAFF
# =====================================================
class ItemViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_CATALOG_EDIT

    @extend_schema(parameters=[*LIST_PARAMETERS, OpenApiParameter("status", str, required=False)])
    def list(self, request):
        params = request.query_params
        page = get_items(
            type=params.get("type") or None,
            status=params.get("status") or None,
            category_id=params.get("category") or None,
            business_id=params.get("business") or None,
            featured=_parse_bool(params.get("featured")),
            limit=params.get("limit") or None,
            last_doc_id=params.get("last_doc_id") or None,
        )
        return _page_response(page, promotions=get_active_promotions())

    @extend_schema(request=ItemWriteSerializer, responses={201: ItemSerializer})
    def create(self, request):
        serializer = ItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = create_item(**serializer.validated_data)
        return Response(ItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: ItemSerializer})
    def retrieve(self, request, pk=None):
        return Response(ItemSerializer(get_item_by_id(pk)).data)

    @extend_schema(request=ItemWriteSerializer, responses={200: ItemSerializer})
    def partial_update(self, request, pk=None):
        serializer = ItemWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        item = update_item(pk, **serializer.validated_data)
        return Response(ItemSerializer(item).data)

    def update(self, request, pk=None):
        return self.partial_update(request, pk)

    def destroy(self, request, pk=None):
        delete_item(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CategoryViewSet(viewsets.ModelViewSet):
    queryset = Category.objects.all().order_by("name")
    serializer_class = CategorySerializer
    permission_classes = [CapabilityOrReadOnly]
    required_capability = CAP_CATALOG_EDIT
    pagination_class = None


# =====================================================
# PUBLIC
# =====================================================
class PublicItemListView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicCatalogThrottle]

    @extend_schema(parameters=LIST_PARAMETERS)
    def get(self, request):
        params = request.query_params
        page = get_items(
            type=params.get("type") or None,
            status=Item.STATUS_ACTIVE,
            category_id=params.get("category") or None,
            featured=_parse_bool(params.get("featured")),
            limit=params.get("limit") or 20,
            last_doc_id=params.get("last_doc_id") or None,
        )
        return _page_response(page, promotions=get_active_promotions())


def _active_or_404(item):
    if item is None or item.status != Item.STATUS_ACTIVE:
        raise NotFoundError("Item")
    return item


class PublicItemDetailView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicCatalogThrottle]

    @extend_schema(responses={200: ItemSerializer, 404: OpenApiResponse(description="Item not found")})
    def get(self, request, item_id):
        item = _active_or_404(get_item_by_id(item_id))
        return Response(ItemSerializer(item, context={"promotions": get_active_promotions()}).data)


class PublicItemBySlugView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicCatalogThrottle]

    @extend_schema(responses={200: ItemSerializer, 404: OpenApiResponse(description="Item not found")})
    def get(self, request, slug):
        item = _active_or_404(get_item_by_slug(slug))
        return Response(ItemSerializer(item, context={"promotions": get_active_promotions()}).data)


class PublicItemMetadataView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicCatalogThrottle]

    @extend_schema(responses={200: OpenApiResponse(description="SEO / social metadata")})
    def get(self, request, slug):
        item = _active_or_404(get_item_by_slug(slug))
        return Response(generate_item_metadata(item, item.business))
