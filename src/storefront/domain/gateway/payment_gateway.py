"""Payment provider abstraction.

Both providers are modelled the same way: the system creates a payment
intent for an order (a hosted checkout session, or a provider-side order)
and later asks the provider whether a given session/order reference was
paid. Implementations raise PaymentProviderError for any provider failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from storefront.domain.model.order import Order


@dataclass(frozen=True)
class PaymentIntent:
    provider: str
    provider_order_ref: str
    checkout_url: str | None = None


@dataclass(frozen=True)
class SessionStatus:
    """What the provider says about a session/order reference."""

    provider_order_ref: str
    paid: bool
    order_id: int | None  # our order id, read back from provider metadata
    provider_payment_ref: str | None = None


class PaymentGateway(ABC):

    name: str

    @abstractmethod
    def create_payment_intent(
        self, order: Order, customer_email: str | None = None
    ) -> PaymentIntent:
        """Register the order with the provider and return its reference."""

    @abstractmethod
    def resolve_session(self, session_id: str) -> SessionStatus:
        """Look up a session/order reference at the provider."""
