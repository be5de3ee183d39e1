"""The explicit transaction handle for relational work.

One unit of work is one relational transaction. It is opened by the
application layer and passed into every domain-service call that takes
part in the operation, so nothing relies on ambient connection state.
Leaving the ``with`` block without ``commit()`` rolls back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from storefront.domain.repository.cart_repository import CartRepository
from storefront.domain.repository.inventory_repository import InventoryRepository
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository


class RelationalUnitOfWork(ABC):

    inventory: InventoryRepository
    orders: OrderRepository
    payments: PaymentRepository
    carts: CartRepository

    def __enter__(self) -> RelationalUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.rollback()
        finally:
            self.close()

    @abstractmethod
    def commit(self) -> None:
        """Make every change in this unit of work durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes; a no-op after commit."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying connection."""


UnitOfWorkFactory = Callable[[], RelationalUnitOfWork]
