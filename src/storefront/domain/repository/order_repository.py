"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.order import Order, OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    def add(self, order: Order) -> None:
        """Persist a new order with its items and assign ``order.id``."""

    @abstractmethod
    def get_by_id(self, order_id: int) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def get_by_tracking_number(self, tracking_number: str) -> Order | None:
        """Return the order carrying this carrier tracking number, or None."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[Order]:
        """Return a user's orders, newest first."""

    @abstractmethod
    def compare_and_set_status(
        self, order_id: int, expected: OrderStatus, new: OrderStatus
    ) -> bool:
        """Write *new* only if the stored status is still *expected*."""

    @abstractmethod
    def save_tracking(self, order: Order) -> None:
        """Persist tracking number, carrier and tracking URL."""

    @abstractmethod
    def count_active_references(self, product_id: str) -> int:
        """Count order items for *product_id* whose order is not terminal."""
