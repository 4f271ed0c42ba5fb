# bookings/urls.py

from rest_framework.routers import SimpleRouter

from bookings.views import BookingViewSet

router = SimpleRouter()
router.register(r"", BookingViewSet, basename="bookings")

urlpatterns = router.urls
