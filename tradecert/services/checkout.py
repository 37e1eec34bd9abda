# tradecert/services/checkout.py
"""Thin client for the Stripe REST API (Checkout Sessions, Products, Prices)
and the signature check for its webhook deliveries.

Stripe takes form-encoded bodies with bracketed keys for nested values, so
payloads are flattened before posting.
"""
from __future__ import annotations

import hashlib
import hmac
import time
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Tuple

import httpx
from loguru import logger
from pydantic import ValidationError

from tradecert.core.config import settings
from tradecert.core.errors import GatewayError, ValidationFailed
from tradecert.schemas.payment import GatewayEvent


def flatten_form(data: Dict[str, Any], prefix: str = "") -> List[Tuple[str, str]]:
    """{"a": {"b": 1}, "c": [x]} -> [("a[b]", "1"), ("c[0]", "x")]"""
    out: List[Tuple[str, str]] = []
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            out.extend(flatten_form(value, name))
        elif isinstance(value, (list, tuple)):
            for i, item in enumerate(value):
                if isinstance(item, dict):
                    out.extend(flatten_form(item, f"{name}[{i}]"))
                else:
                    out.append((f"{name}[{i}]", str(item)))
        elif isinstance(value, bool):
            out.append((name, "true" if value else "false"))
        else:
            out.append((name, str(value)))
    return out


class StripeClient:
    def __init__(self, http: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.http = http or httpx.Client(timeout=timeout)
        self.base_url = settings.STRIPE_API_BASE.rstrip("/")
        self.api_key = settings.STRIPE_API_KEY
        self.default_timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _request(self, method: str, path: str, form: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self.http.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(),
                data=dict(flatten_form(form)) if form else None,
                timeout=self.default_timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("stripe {} {} failed: {}", method, path, exc)
            raise GatewayError("GATEWAY_ERROR", "Payment gateway is unreachable.") from exc

        if resp.status_code >= 400:
            logger.error("stripe {} {} -> {} {}", method, path, resp.status_code, resp.text[:500])
            raise GatewayError("GATEWAY_ERROR", f"Payment gateway rejected the request ({resp.status_code}).")
        return resp.json()

    # ---------- checkout ----------

    def create_checkout_session(self, *, price_id: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/v1/checkout/sessions", {
            "ui_mode": "embedded",
            "mode": "payment",
            "line_items": [{"price": price_id, "quantity": 1}],
            "return_url": f"{settings.FRONTEND_URL.rstrip('/')}/success?session_id={{CHECKOUT_SESSION_ID}}",
            "metadata": metadata,
        })

    def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v1/checkout/sessions/{session_id}")

    # ---------- catalog ----------

    def create_product_with_price(self, *, name: str, description: str, price: Decimal, currency: str,
                                  metadata: Dict[str, Any]) -> Tuple[str, str]:
        """Returns (product_id, price_id); amounts go out in minor units."""
        product = self._request("POST", "/v1/products", {
            "name": name, "description": description or None, "metadata": metadata,
        })
        price_obj = self.create_price(product_id=product["id"], price=price, currency=currency)
        return product["id"], price_obj["id"]

    def create_price(self, *, product_id: str, price: Decimal, currency: str) -> Dict[str, Any]:
        return self._request("POST", "/v1/prices", {
            "product": product_id,
            "unit_amount": int(Decimal(price) * 100),
            "currency": currency.lower(),
        })


def get_stripe() -> Iterator[StripeClient]:
    client = StripeClient()
    try:
        yield client
    finally:
        client.http.close()


# ---------- webhooks ----------

def _signature_parts(header: str) -> Tuple[Optional[str], List[str]]:
    timestamp, signatures = None, []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures

def construct_event(payload: bytes, sig_header: Optional[str], *, secret: Optional[str] = None,
                    tolerance: Optional[int] = None, now: Optional[int] = None) -> GatewayEvent:
    """Checks the `stripe-signature` header (HMAC-SHA256 over "<t>.<body>") and parses the event."""
    secret = settings.STRIPE_WEBHOOK_SECRET if secret is None else secret
    tolerance = settings.WEBHOOK_TOLERANCE_SECONDS if tolerance is None else tolerance
    if not secret:
        raise ValidationFailed("WEBHOOK_NOT_CONFIGURED", "Webhook signing secret is not configured.")
    if not sig_header:
        raise ValidationFailed("INVALID_SIGNATURE", "Missing stripe-signature header.")

    timestamp, signatures = _signature_parts(sig_header)
    try:
        issued = int(timestamp)
    except (TypeError, ValueError):
        raise ValidationFailed("INVALID_SIGNATURE", "Malformed stripe-signature header.")
    now = int(time.time()) if now is None else now
    if abs(now - issued) > tolerance:
        raise ValidationFailed("INVALID_SIGNATURE", "Webhook timestamp is outside the tolerance window.")

    expected = hmac.new(secret.encode(), f"{issued}.".encode() + payload, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, s) for s in signatures):
        raise ValidationFailed("INVALID_SIGNATURE", "Webhook signature does not match.")

    try:
        return GatewayEvent.model_validate_json(payload)
    except ValidationError as exc:
        raise ValidationFailed("INVALID_PAYLOAD", "Webhook body is not a valid event.") from exc
