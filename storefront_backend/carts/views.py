# carts/views.py

"""
CART VIEWS (authenticated customers)

- GET    /api/cart/                   cart summary (priced server-side)
- DELETE /api/cart/                   clear cart
- POST   /api/cart/items/             add item (merges quantity)
- PATCH  /api/cart/items/<item_id>/   set quantity (<= 0 removes)
- DELETE /api/cart/items/<item_id>/   remove item
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from carts.serializers import AddCartItemSerializer, UpdateCartItemSerializer
from carts.services.cart_service import (
    add_item,
    cart_summary,
    clear_cart,
    get_active_cart,
    remove_item,
    update_quantity,
)
from catalog.services.item_service import get_item_by_id


class CartView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: OpenApiResponse(description="Cart summary")})
    def get(self, request):
        cart = get_active_cart(request.user)
        return Response(cart_summary(cart))

    def delete(self, request):
        cart = get_active_cart(request.user)
        clear_cart(cart)
        return Response(cart_summary(cart))


class CartItemsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=AddCartItemSerializer, responses={201: OpenApiResponse(description="Cart summary")})
    def post(self, request):
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cart = get_active_cart(request.user)
        add_item(
            cart,
            get_item_by_id(data["item_id"]),
            quantity=data["quantity"],
            variants=data.get("selected_variants"),
        )
        return Response(cart_summary(cart), status=status.HTTP_201_CREATED)


class CartItemDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=UpdateCartItemSerializer)
    def patch(self, request, item_id):
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = get_active_cart(request.user)
        update_quantity(cart, item_id, serializer.validated_data["quantity"])
        return Response(cart_summary(cart))

    def delete(self, request, item_id):
        cart = get_active_cart(request.user)
        remove_item(cart, item_id)
        return Response(cart_summary(cart))
