import json
from unittest import mock
from urllib.error import URLError

from django.test import SimpleTestCase, override_settings
from rest_framework.test import APIClient

from security.recaptcha import verify_recaptcha


def _fake_response(payload):
    resp = mock.MagicMock()
    resp.read.return_value = json.dumps(payload).encode("utf-8")
    cm = mock.MagicMock()
    cm.__enter__.return_value = resp
    return cm


@override_settings(RECAPTCHA_SECRET_KEY="secret")
class VerifyRecaptchaTests(SimpleTestCase):
    """
    GUARANTEES:
    - Verification is skipped (True) when no secret is configured
    - Missing tokens and transport errors never verify
    """

    @override_settings(RECAPTCHA_SECRET_KEY="")
    def test_no_secret_skips(self):
        with self.assertLogs("security.recaptcha", level="WARNING"):
            self.assertTrue(verify_recaptcha("anything"))

    def test_missing_token(self):
        self.assertFalse(verify_recaptcha(""))
        self.assertFalse(verify_recaptcha(None))

    @mock.patch("security.recaptcha.urlopen")
    def test_success(self, urlopen):
        urlopen.return_value = _fake_response({"success": True})
        self.assertTrue(verify_recaptcha("tok"))

        req = urlopen.call_args[0][0]
        self.assertEqual(req.full_url, "https://www.google.com/recaptcha/api/siteverify")
        self.assertIn(b"secret=secret", req.data)
        self.assertIn(b"response=tok", req.data)

    @mock.patch("security.recaptcha.urlopen")
    def test_rejected(self, urlopen):
        urlopen.return_value = _fake_response({"success": False, "error-codes": ["bad"]})
        self.assertFalse(verify_recaptcha("tok"))

    @mock.patch("security.recaptcha.urlopen", side_effect=URLError("down"))
    def test_transport_error(self, urlopen):
        self.assertFalse(verify_recaptcha("tok"))


class RecaptchaViewTests(SimpleTestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = "/api/auth/verify-recaptcha/"

    def test_missing_token_400(self):
        response = self.client.post(self.url, {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"success": False, "error": "reCAPTCHA token is required"}
        )

    @mock.patch("security.views.verify_recaptcha", return_value=False)
    def test_failed_400(self, _verify):
        response = self.client.post(self.url, {"token": "t"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "reCAPTCHA verification failed")

    @mock.patch("security.views.verify_recaptcha", return_value=True)
    def test_ok(self, _verify):
        response = self.client.post(self.url, {"token": "t"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})

    @mock.patch("security.views.verify_recaptcha", side_effect=RuntimeError("boom"))
    def test_crash_500(self, _verify):
        response = self.client.post(self.url, {"token": "t"}, format="json")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Internal server error")
