from django.test import TestCase
from rest_framework.test import APIClient


class ProjectUrlTests(TestCase):
    """
    GUARANTEES:
    - /api/ lists every module
    - /api/health/ reports database connectivity
    """

    def test_api_root(self):
        res = APIClient().get("/api/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["modules"]["ledger"], "/api/ledger/")

    def test_health(self):
        res = APIClient().get("/api/health/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"status": "ok", "db": "ok"})
