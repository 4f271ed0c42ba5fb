# businesses/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from businesses.views import BusinessViewSet

router = SimpleRouter()
router.register(r"", BusinessViewSet, basename="businesses")

urlpatterns = [
    path("", include(router.urls)),
]
