# promotions/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from promotions.views import PromotionViewSet, PublicPromotionDetailView, PublicPromotionListView

router = SimpleRouter()
router.register(r"", PromotionViewSet, basename="promotions")

urlpatterns = [
    path("public/", PublicPromotionListView.as_view(), name="public-promotions"),
    path("public/<str:slug>/", PublicPromotionDetailView.as_view(), name="public-promotion-detail"),
    path("", include(router.urls)),
]
