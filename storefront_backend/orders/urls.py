# orders/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from orders.views import OrderViewSet, PublicOrderLookupView

router = SimpleRouter()
router.register(r"", OrderViewSet, basename="orders")

urlpatterns = [
    path("number/<str:order_number>/", PublicOrderLookupView.as_view(), name="order-by-number"),
    path("", include(router.urls)),
]
