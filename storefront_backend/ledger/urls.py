# ledger/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from ledger.views import DerivedTransactionsView, LedgerEntryViewSet, ReconciliationView

router = SimpleRouter()
router.register(r"entries", LedgerEntryViewSet, basename="ledger-entries")

urlpatterns = [
    path("derived/", DerivedTransactionsView.as_view(), name="ledger-derived"),
    path("reconciliation/", ReconciliationView.as_view(), name="ledger-reconciliation"),
    path("", include(router.urls)),
]
