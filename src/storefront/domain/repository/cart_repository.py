"""Abstract repository for per-user carts."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.cart import Cart


class CartRepository(ABC):

    @abstractmethod
    def get_by_user(self, user_id: str) -> Cart | None:
        """Return the user's cart with its items, or None if never created."""

    @abstractmethod
    def get_or_create(self, user_id: str) -> Cart:
        """Return the user's cart, creating it lazily."""

    @abstractmethod
    def add_quantity(self, cart_id: int, product_id: str, quantity: int) -> None:
        """Add to the existing line for the product, or insert it.

        Concurrent adds for the same (cart, product) must end in one row.
        """

    @abstractmethod
    def set_quantity(self, cart_item_id: int, quantity: int) -> None:
        """Overwrite the quantity of a cart line."""

    @abstractmethod
    def remove_item(self, cart_item_id: int) -> bool:
        """Delete a cart line; return False if it did not exist."""

    @abstractmethod
    def clear(self, user_id: str) -> int:
        """Delete every line in the user's cart; return how many were removed."""
