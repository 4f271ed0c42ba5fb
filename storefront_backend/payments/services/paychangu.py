# payments/services/paychangu.py

"""
PayChangu REST client (hosted checkout).

- POST {base}/payment                 -> data.checkout_url
- GET  {base}/verify-payment/{tx_ref} -> data.status / amount / currency
- webhooks carry an HMAC-SHA256 hex digest of the raw body in "Signature"

Transport and API failures raise PaymentProviderError.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from decimal import Decimal
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from django.conf import settings

from common.errors import PaymentProviderError
from common.money import money

logger = logging.getLogger(__name__)

PAYCHANGU_BASE = "https://api.paychangu.com"


def _paychangu_cfg() -> dict:
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = payments.get("PAYCHANGU") if isinstance(payments, dict) else None
    return cfg if isinstance(cfg, dict) else {}


def _get_secret_key() -> str:
    sk = (_paychangu_cfg().get("SECRET_KEY") or "").strip()
    if not sk:
        raise PaymentProviderError(
            "PayChangu SECRET_KEY is not configured. "
            "Expected settings.PAYMENTS['PAYCHANGU']['SECRET_KEY']."
        )
    return sk


def _safe_preview(text: str, limit: int = 500) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _request_json(method: str, url: str, *, body: dict | None = None, timeout: int = 25) -> dict[str, Any]:
    data = None
    if body is not None:
        data = json.dumps(body, ensure_ascii=False).encode("utf-8")

    req = Request(
        url,
        data=data,
        headers={
            "Authorization": f"Bearer {_get_secret_key()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        },
        method=method,
    )

    try:
        with urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        raw = e.read().decode("utf-8", errors="replace") if e.fp is not None else ""
        try:
            message = (json.loads(raw) or {}).get("message")
        except (ValueError, AttributeError):
            message = None
        raise PaymentProviderError(
            f"PayChangu HTTPError: {e.code} {message or _safe_preview(raw) or e.reason}"
        ) from e
    except (URLError, TimeoutError) as e:
        raise PaymentProviderError(f"PayChangu URLError: {e}") from e

    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise PaymentProviderError(f"PayChangu returned non-JSON: {_safe_preview(raw)}") from e
    if not isinstance(parsed, dict):
        raise PaymentProviderError(f"PayChangu returned non-object JSON: {_safe_preview(raw)}")
    return parsed


def paychangu_initiate_payment(
    *,
    amount: Decimal,
    currency: str,
    tx_ref: str,
    email: str,
    first_name: str = "",
    last_name: str = "",
    callback_url: str = "",
    return_url: str = "",
    title: str = "",
    description: str = "",
    meta: dict | None = None,
) -> dict:
    """Start a hosted checkout. Returns {"checkout_url", "raw"}."""
    payload: dict = {
        "amount": str(money(amount)),
        "currency": currency,
        "tx_ref": tx_ref,
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "callback_url": callback_url,
        "return_url": return_url,
        "customization": {"title": title, "description": description},
    }
    if meta:
        payload["meta"] = meta

    parsed = _request_json("POST", f"{PAYCHANGU_BASE}/payment", body=payload)

    data = parsed.get("data") or {}
    checkout_url = data.get("checkout_url") if isinstance(data, dict) else None
    if str(parsed.get("status") or "").lower() != "success" or not checkout_url:
        raise PaymentProviderError(parsed.get("message") or "PayChangu rejected the payment request")

    return {"checkout_url": checkout_url, "raw": parsed}


def paychangu_verify_payment(tx_ref: str) -> dict:
    """
    Normalised verification result:
        {"ok", "status", "amount", "currency", "reference", "tx_ref", "raw"}
    `status` is the transaction status ("success", "failed", "pending", ...).
    """
    ref = str(tx_ref or "").strip()
    if not ref:
        return {"ok": False, "status": "", "amount": None, "currency": None, "reference": "", "tx_ref": "", "raw": {}}

    raw = _request_json("GET", f"{PAYCHANGU_BASE}/verify-payment/{quote(ref, safe='')}")
    data = raw.get("data") or {}
    if not isinstance(data, dict):
        data = {}

    amount = data.get("amount")
    try:
        amount = money(amount) if amount is not None else None
    except ArithmeticError:
        logger.warning("Invalid amount in PayChangu verification", extra={"tx_ref": ref, "amount": amount})
        amount = None

    return {
        "ok": str(raw.get("status") or "").lower() == "success",
        "status": str(data.get("status") or "").strip().lower(),
        "amount": amount,
        "currency": str(data["currency"]).upper() if data.get("currency") else None,
        "reference": str(data.get("reference") or ""),
        "tx_ref": str(data.get("tx_ref") or ref),
        "raw": raw,
    }


def verify_paychangu_signature(raw_body: bytes, signature: str | None) -> bool:
    secret = (_paychangu_cfg().get("WEBHOOK_SECRET") or "").strip()
    if not secret or not signature:
        return False
    computed = hmac.new(secret.encode("utf-8"), raw_body or b"", hashlib.sha256).hexdigest()
    return hmac.compare_digest(computed, str(signature).strip())
