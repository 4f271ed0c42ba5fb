# security/recaptcha.py

"""
reCAPTCHA v2/v3 server-side verification.

- No secret configured -> verification is skipped (warning logged, returns True)
- Missing token        -> False
- Transport/parse error -> logged, False
"""

from __future__ import annotations

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from django.conf import settings

logger = logging.getLogger(__name__)

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


def get_recaptcha_site_key() -> str:
    return (getattr(settings, "RECAPTCHA_SITE_KEY", "") or "").strip()


def _secret_key() -> str:
    return (getattr(settings, "RECAPTCHA_SECRET_KEY", "") or "").strip()


def verify_recaptcha(token, *, timeout: int = 10) -> bool:
    secret = _secret_key()
    if not secret:
        logger.warning("RECAPTCHA_SECRET_KEY is not set, skipping verification")
        return True

    if not token:
        return False

    body = urlencode({"secret": secret, "response": str(token)}).encode("utf-8")
    req = Request(
        RECAPTCHA_VERIFY_URL,
        data=body,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        method="POST",
    )

    try:
        with urlopen(req, timeout=timeout) as resp:
            data = json.loads(resp.read().decode("utf-8", errors="replace"))
    except HTTPError as e:
        logger.error("reCAPTCHA verification HTTP error", extra={"status": e.code})
        return False
    except (URLError, TimeoutError, ValueError) as e:
        logger.error("reCAPTCHA verification failed", extra={"reason": str(e)})
        return False

    if not isinstance(data, dict):
        return False

    if data.get("success") is not True:
        logger.info(
            "reCAPTCHA rejected token",
            extra={"error_codes": data.get("error-codes") or []},
        )
    return data.get("success") is True
