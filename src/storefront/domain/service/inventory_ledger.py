"""Domain service: Inventory Ledger.

Owns every read and write of stock levels. The order-time check is a
soft reservation: it holds no lock, so stock can be sold twice between
checking and paying. The payment-time decrement is the hard guard, a
single conditional update that can never take stock below zero.
"""

from __future__ import annotations

from storefront.domain.exceptions import (
    EntityNotFoundError,
    FulfillmentConflictError,
    ValidationError,
)
from storefront.domain.model.inventory import InventoryRecord
from storefront.domain.repository.unit_of_work import RelationalUnitOfWork


class InventoryLedger:

    def check_and_reserve(
        self, uow: RelationalUnitOfWork, product_id: str, quantity: int
    ) -> InventoryRecord:
        """Point-in-time check that *quantity* units are in stock.

        Returns the record so callers can read the authoritative price
        from the same snapshot.
        """
        record = uow.inventory.get_by_product_id(product_id)
        if record is None:
            raise EntityNotFoundError(f"Product not found in inventory: '{product_id}'")
        if not record.has_available(quantity):
            raise ValidationError(
                f"Insufficient stock for {product_id} "
                f"(need {quantity}, have {record.stock_level})"
            )
        return record

    def decrement(
        self, uow: RelationalUnitOfWork, product_id: str, quantity: int
    ) -> bool:
        """Subtract *quantity* if and only if enough stock remains.

        Not idempotent: calling it twice takes stock twice. Callers make
        sure it runs once per order.
        """
        if quantity <= 0:
            raise ValidationError("Decrement quantity must be positive")
        return uow.inventory.decrement_if_available(product_id, quantity)

    def require_decrement(
        self, uow: RelationalUnitOfWork, product_id: str, quantity: int
    ) -> None:
        if not self.decrement(uow, product_id, quantity):
            raise FulfillmentConflictError(
                f"Insufficient stock for {product_id} at payment time "
                f"(need {quantity})"
            )
