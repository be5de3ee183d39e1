"""Razorpay Orders API implementation of PaymentGateway.

The server creates a Razorpay order up front; its id is stored as the
payment's ``provider_order_ref`` and is what ``order.paid`` webhooks
refer to. Our order id rides along in the Razorpay order ``notes``.
"""

from __future__ import annotations

import requests
import structlog

from storefront.domain.exceptions import PaymentProviderError
from storefront.domain.gateway.payment_gateway import (
    PaymentGateway,
    PaymentIntent,
    SessionStatus,
)
from storefront.domain.model.order import Order

logger = structlog.get_logger(__name__)

API_BASE_URL = "https://api.razorpay.com/v1"
REQUEST_TIMEOUT_SECONDS = 10


class RazorpayOrderGateway(PaymentGateway):

    name = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        session: requests.Session | None = None,
        base_url: str = API_BASE_URL,
    ) -> None:
        self._http = session or requests.Session()
        self._http.auth = (key_id, key_secret)
        self._base_url = base_url.rstrip("/")

    def create_payment_intent(
        self, order: Order, customer_email: str | None = None
    ) -> PaymentIntent:
        body = {
            "amount": order.total_amount.minor_units,
            "currency": order.total_amount.currency,
            "receipt": f"order_{order.id}",
            "notes": {"order_id": str(order.id), "user_id": order.user_id},
        }
        if customer_email:
            body["notes"]["email"] = customer_email

        data = self._request("POST", "/orders", json=body)
        provider_order_ref = data.get("id")
        if not provider_order_ref:
            raise PaymentProviderError("Razorpay returned an order without an id")

        logger.info("razorpay_order_created", order_id=order.id, razorpay_order_id=provider_order_ref)
        return PaymentIntent(provider=self.name, provider_order_ref=provider_order_ref)

    def resolve_session(self, session_id: str) -> SessionStatus:
        data = self._request("GET", f"/orders/{session_id}")
        notes = data.get("notes") or {}
        raw_order_id = notes.get("order_id") if isinstance(notes, dict) else None
        try:
            order_id = int(raw_order_id) if raw_order_id else None
        except ValueError:
            order_id = None

        paid = data.get("status") == "paid"
        payment_ref = None
        if paid:
            payments = self._request("GET", f"/orders/{session_id}/payments")
            captured = [
                p for p in payments.get("items", []) if p.get("status") == "captured"
            ]
            if captured:
                payment_ref = captured[0].get("id")

        return SessionStatus(
            provider_order_ref=session_id,
            paid=paid,
            order_id=order_id,
            provider_payment_ref=payment_ref,
        )

    # --- HTTP helpers ---------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.request(
                method, url, timeout=REQUEST_TIMEOUT_SECONDS, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as exc:
            logger.error("razorpay_request_failed", method=method, path=path, error=str(exc))
            raise PaymentProviderError(f"Razorpay error: {exc}") from exc
        except ValueError as exc:
            raise PaymentProviderError("Razorpay returned a non-JSON response") from exc
