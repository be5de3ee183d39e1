"""Abstract document store for catalog products and categories.

Defined in the domain layer so the domain never depends on
infrastructure. The store has no transactions: every method is a single
document write, and the stock/price mirror setters take absolute values
so repeating them is harmless.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from storefront.domain.model.product import CatalogProduct, Category


class CatalogStore(ABC):

    @abstractmethod
    def get(self, product_id: str) -> CatalogProduct | None:
        """Return a product document, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[CatalogProduct]:
        """Return every product document."""

    @abstractmethod
    def insert(self, product: CatalogProduct) -> None:
        """Insert a new document; raise ConflictError if the id is taken."""

    @abstractmethod
    def replace(self, product: CatalogProduct) -> None:
        """Overwrite an existing document."""

    @abstractmethod
    def delete(self, product_id: str) -> bool:
        """Delete a document; return False if it did not exist."""

    @abstractmethod
    def set_display_stock(self, product_id: str, stock_level: int) -> bool:
        """Mirror the ledger stock level; return False if the document is missing."""

    @abstractmethod
    def set_display_price(self, product_id: str, price: Decimal) -> bool:
        """Mirror the ledger price; return False if the document is missing."""

    @abstractmethod
    def category_exists(self, category_id: str) -> bool:
        """Return True if the category is registered."""

    @abstractmethod
    def add_category(self, category: Category) -> None:
        """Register or overwrite a category."""

    @abstractmethod
    def get_category(self, category_id: str) -> Category | None:
        """Return a category, or None if not registered."""

    @abstractmethod
    def delete_category(self, category_id: str) -> bool:
        """Remove a category; return False if it was not registered.

        Raise ConflictError while any product document still uses it.
        The check and the removal must happen as one write.
        """
