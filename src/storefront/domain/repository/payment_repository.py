"""Abstract repository for Payment records."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.payment import Payment


class PaymentRepository(ABC):

    @abstractmethod
    def add(self, payment: Payment) -> None:
        """Persist a new payment and assign ``payment.id``."""

    @abstractmethod
    def get_by_provider_order_ref(self, provider_order_ref: str) -> Payment | None:
        """Return the payment created for a provider order/session reference."""

    @abstractmethod
    def latest_for_order(self, order_id: int) -> Payment | None:
        """Return the most recent payment attempt for an order."""

    @abstractmethod
    def mark_success(self, payment_id: int, provider_payment_ref: str | None) -> None:
        """Record a captured payment."""

    @abstractmethod
    def mark_failed(self, provider_order_ref: str) -> int:
        """Mark every non-successful payment for the reference Failed; return the count."""
