"""Integration tests for the CartService."""

import pytest

from storefront.application.cart_service import CartService
from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from tests.fakes import memory_uow_factory, seed_inventory


def _setup():
    uow_factory = memory_uow_factory()
    seed_inventory(uow_factory, "prod_a", stock=5, price="100.00")
    seed_inventory(uow_factory, "prod_b", stock=2, price="19.99")
    return CartService(uow_factory), uow_factory


class TestAddItem:

    def test_repeated_adds_merge_into_one_line(self):
        carts, _ = _setup()
        carts.add_item("user-1", "prod_a", 1)
        cart = carts.add_item("user-1", "prod_a", 2)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3
        assert cart.total == "INR 300.00"

    def test_merged_quantity_is_stock_checked(self):
        carts, _ = _setup()
        carts.add_item("user-1", "prod_b", 2)
        with pytest.raises(ValidationError, match="Insufficient stock for prod_b"):
            carts.add_item("user-1", "prod_b", 1)
        assert carts.show("user-1").items[0].quantity == 2

    def test_unknown_product(self):
        carts, _ = _setup()
        with pytest.raises(EntityNotFoundError):
            carts.add_item("user-1", "ghost", 1)

    def test_non_positive_quantity_rejected(self):
        carts, _ = _setup()
        with pytest.raises(ValidationError):
            carts.add_item("user-1", "prod_a", 0)

    def test_prices_come_from_inventory(self):
        carts, _ = _setup()
        carts.add_item("user-1", "prod_a", 1)
        cart = carts.add_item("user-1", "prod_b", 2)
        lines = {line.product_id: line for line in cart.items}
        assert lines["prod_b"].unit_price == "INR 19.99"
        assert lines["prod_b"].line_total == "INR 39.98"
        assert cart.total == "INR 139.98"


class TestEditCart:

    def test_update_sets_quantity(self):
        carts, _ = _setup()
        line = carts.add_item("user-1", "prod_a", 1).items[0]
        cart = carts.update_item("user-1", line.cart_item_id, 4)
        assert cart.items[0].quantity == 4

    def test_update_checks_stock(self):
        carts, _ = _setup()
        line = carts.add_item("user-1", "prod_a", 1).items[0]
        with pytest.raises(ValidationError, match="Insufficient stock"):
            carts.update_item("user-1", line.cart_item_id, 6)

    def test_remove_item(self):
        carts, _ = _setup()
        line = carts.add_item("user-1", "prod_a", 1).items[0]
        cart = carts.remove_item("user-1", line.cart_item_id)
        assert cart.items == []
        assert cart.total == "INR 0.00"

    def test_cannot_touch_another_users_line(self):
        carts, _ = _setup()
        line = carts.add_item("user-1", "prod_a", 1).items[0]
        with pytest.raises(EntityNotFoundError, match=f"Cart item #{line.cart_item_id}"):
            carts.update_item("user-2", line.cart_item_id, 2)
        with pytest.raises(EntityNotFoundError):
            carts.remove_item("user-2", line.cart_item_id)

    def test_clear(self):
        carts, _ = _setup()
        carts.add_item("user-1", "prod_a", 1)
        carts.add_item("user-1", "prod_b", 1)
        assert carts.clear("user-1") == 2
        assert carts.show("user-1").items == []

    def test_show_without_cart(self):
        carts, _ = _setup()
        cart = carts.show("nobody")
        assert cart.items == []
        assert cart.total == "INR 0.00"
