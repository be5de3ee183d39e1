"""Abstract repository for InventoryRecord rows in the relational store."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.inventory import InventoryRecord


class InventoryRepository(ABC):

    @abstractmethod
    def get_by_product_id(self, product_id: str) -> InventoryRecord | None:
        """Return the inventory record for a product, or None."""

    @abstractmethod
    def list_all(self) -> list[InventoryRecord]:
        """Return every inventory record."""

    @abstractmethod
    def add(self, record: InventoryRecord) -> None:
        """Insert a new record; raise ConflictError on a duplicate product_id or sku."""

    @abstractmethod
    def update(self, record: InventoryRecord) -> None:
        """Overwrite stock level and price of an existing record."""

    @abstractmethod
    def decrement_if_available(self, product_id: str, quantity: int) -> bool:
        """Atomically subtract *quantity* only where stock_level >= quantity.

        Returns True when exactly one row was changed.
        """

    @abstractmethod
    def delete(self, product_id: str) -> bool:
        """Delete the record; return False if it did not exist."""
