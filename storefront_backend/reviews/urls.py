# reviews/urls.py

from rest_framework.routers import SimpleRouter

from reviews.views import ReviewViewSet

router = SimpleRouter()
router.register(r"", ReviewViewSet, basename="reviews")

urlpatterns = router.urls
