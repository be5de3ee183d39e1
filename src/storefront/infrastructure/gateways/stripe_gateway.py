"""Stripe Checkout implementation of PaymentGateway.

The order id travels to Stripe in the session metadata and is read back
when the client confirms, so the confirm path never trusts an order id
supplied by the client.
"""

from __future__ import annotations

import stripe
import structlog

from storefront.domain.exceptions import PaymentProviderError
from storefront.domain.gateway.payment_gateway import (
    PaymentGateway,
    PaymentIntent,
    SessionStatus,
)
from storefront.domain.model.order import Order

logger = structlog.get_logger(__name__)


class StripeCheckoutGateway(PaymentGateway):

    name = "stripe"

    def __init__(self, secret_key: str, frontend_url: str) -> None:
        self._secret_key = secret_key
        self._frontend_url = frontend_url.rstrip("/")

    def create_payment_intent(
        self, order: Order, customer_email: str | None = None
    ) -> PaymentIntent:
        currency = order.total_amount.currency.lower()
        line_items = [
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": item.product_id},
                    "unit_amount": item.unit_price.minor_units,
                },
                "quantity": item.quantity.value,
            }
            for item in order.items
        ]
        params: dict = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "metadata": {"order_id": str(order.id), "user_id": order.user_id},
            "success_url": (
                f"{self._frontend_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"
            ),
            "cancel_url": f"{self._frontend_url}/cart",
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(
                api_key=self._secret_key,
                idempotency_key=f"order_{order.id}",
                **params,
            )
        except stripe.StripeError as exc:
            logger.error(
                "stripe_checkout_failed",
                order_id=order.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise PaymentProviderError(f"Stripe error: {exc}") from exc

        logger.info("stripe_checkout_created", order_id=order.id, session_id=session.id)
        return PaymentIntent(
            provider=self.name, provider_order_ref=session.id, checkout_url=session.url
        )

    def resolve_session(self, session_id: str) -> SessionStatus:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self._secret_key)
        except stripe.StripeError as exc:
            raise PaymentProviderError(f"Stripe error: {exc}") from exc

        try:
            order_id = int(session.metadata["order_id"])
        except (AttributeError, KeyError, TypeError, ValueError):
            order_id = None

        payment_intent = getattr(session, "payment_intent", None)
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id

        return SessionStatus(
            provider_order_ref=session.id,
            paid=getattr(session, "payment_status", None) == "paid",
            order_id=order_id,
            provider_payment_ref=payment_intent,
        )
