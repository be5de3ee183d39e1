"""Cart lines: ephemeral order input, one cart per user."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CartItem:
    id: int
    cart_id: int
    product_id: str
    quantity: int


@dataclass
class Cart:
    id: int
    user_id: str
    items: list[CartItem]

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, cart_item_id: int) -> CartItem | None:
        for item in self.items:
            if item.id == cart_item_id:
                return item
        return None

    def quantities(self) -> dict[str, int]:
        result: dict[str, int] = {}
        for item in self.items:
            result[item.product_id] = result.get(item.product_id, 0) + item.quantity
        return result
