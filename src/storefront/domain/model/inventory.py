"""InventoryRecord: the relational store's view of a product.

Holds the authoritative stock level and transactional price. The catalog
document for the same ``product_id`` may cache a copy of the stock level
for display, but only this record is ever decremented.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storefront.domain.exceptions import ValidationError


@dataclass
class InventoryRecord:
    """Invariant: ``stock_level`` is never negative."""

    product_id: str
    sku: str
    stock_level: int
    current_price: Decimal

    def __post_init__(self) -> None:
        if not self.product_id:
            raise ValidationError("product_id is required")
        if not self.sku:
            raise ValidationError("sku is required")
        if isinstance(self.stock_level, bool) or not isinstance(self.stock_level, int):
            raise ValidationError("stock_level must be an integer")
        if self.stock_level < 0:
            raise ValidationError("stock_level cannot be negative")
        if not isinstance(self.current_price, Decimal) or self.current_price < 0:
            raise ValidationError("current_price must be a non-negative Decimal")

    def has_available(self, quantity: int) -> bool:
        return self.stock_level >= quantity
