# catalog/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from catalog.views import (
    CategoryViewSet,
    ItemViewSet,
    PublicItemBySlugView,
    PublicItemDetailView,
    PublicItemListView,
    PublicItemMetadataView,
)

router = SimpleRouter()
router.register(r"items", ItemViewSet, basename="items")
router.register(r"categories", CategoryViewSet, basename="categories")

urlpatterns = [
    path("public/items/", PublicItemListView.as_view(), name="public-items"),
    path("public/items/slug/<str:slug>/", PublicItemBySlugView.as_view(), name="public-item-by-slug"),
    path(
        "public/items/slug/<str:slug>/metadata/",
        PublicItemMetadataView.as_view(),
        name="public-item-metadata",
    ),
    path("public/items/<uuid:item_id>/", PublicItemDetailView.as_view(), name="public-item-detail"),
    path("", include(router.urls)),
]
