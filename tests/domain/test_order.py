"""Unit tests for the Order aggregate and its transition table."""

import pytest

from storefront.domain.exceptions import (
    DuplicatePaymentError,
    InvalidTransitionError,
    ValidationError,
)
from storefront.domain.model.order import (
    MAX_LINE_ITEMS,
    TRANSITIONS,
    Order,
    OrderItem,
    OrderStatus,
)
from storefront.domain.model.value_objects import Money, Quantity, ShippingAddress

SHIPPING = ShippingAddress("Asha", "1 MG Road", "Pune", "MH", "411001")


def _make_item(product_id: str = "prod_a", qty: int = 1, price: str = "100.00") -> OrderItem:
    """Helper to build a valid line item."""
    return OrderItem(product_id=product_id, quantity=Quantity(qty), unit_price=Money.of(price))


def _order(status: OrderStatus = OrderStatus.PENDING_PAYMENT) -> Order:
    order = Order.create("user-1", SHIPPING, [_make_item()], "INR")
    order.id = 7
    order.status = status
    return order


class TestOrderCreation:

    def test_happy_path(self):
        order = Order.create("user-1", SHIPPING, [_make_item(qty=2)], "INR")
        assert order.status is OrderStatus.PENDING_PAYMENT
        assert order.total_amount == Money.of("200.00")
        assert order.id is None  # assigned by repository

    def test_total_is_sum_of_line_items(self):
        items = [_make_item("a", 3, "15.00"), _make_item("b", 5, "25.00")]
        assert Order.create("u", SHIPPING, items, "INR").total_amount == Money.of("170.00")

    def test_empty_order_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            Order.create("u", SHIPPING, [], "INR")

    def test_too_many_lines_rejected(self):
        items = [_make_item(f"p{i}") for i in range(MAX_LINE_ITEMS + 1)]
        with pytest.raises(ValidationError, match="Maximum 50"):
            Order.create("u", SHIPPING, items, "INR")

    def test_blank_user_rejected(self):
        with pytest.raises(ValidationError, match="user_id"):
            Order.create("  ", SHIPPING, [_make_item()], "INR")


class TestTransitionTable:

    def test_pending_can_only_pay_or_exit(self):
        assert TRANSITIONS[OrderStatus.PENDING_PAYMENT] == {
            OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.RETURNED,
        }

    def test_terminal_statuses_have_no_exits(self):
        for status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED):
            assert TRANSITIONS[status] == frozenset()

    def test_nothing_reaches_fulfillment_without_paid(self):
        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            assert status not in TRANSITIONS[OrderStatus.PENDING_PAYMENT]

    def test_forward_moves_may_skip_steps(self):
        assert OrderStatus.DELIVERED in TRANSITIONS[OrderStatus.PAID]

    def test_backward_moves_not_allowed(self):
        assert OrderStatus.PROCESSING not in TRANSITIONS[OrderStatus.SHIPPED]


class TestTransitionTo:

    def test_pay_pending_order(self):
        order = _order()
        previous = order.transition_to(OrderStatus.PAID)
        assert previous is OrderStatus.PENDING_PAYMENT
        assert order.status is OrderStatus.PAID

    def test_second_payment_is_duplicate(self):
        order = _order(OrderStatus.PAID)
        with pytest.raises(DuplicatePaymentError):
            order.transition_to(OrderStatus.PAID)

    def test_payment_after_shipping_is_duplicate(self):
        order = _order(OrderStatus.SHIPPED)
        with pytest.raises(DuplicatePaymentError):
            order.transition_to(OrderStatus.PAID)

    def test_illegal_move_rejected_and_status_kept(self):
        order = _order()
        with pytest.raises(InvalidTransitionError, match="Pending Payment to Shipped"):
            order.transition_to(OrderStatus.SHIPPED)
        assert order.status is OrderStatus.PENDING_PAYMENT

    def test_cancelled_order_cannot_be_paid(self):
        order = _order(OrderStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            order.transition_to(OrderStatus.PAID)


class TestWireValues:

    def test_from_wire_is_case_sensitive(self):
        assert OrderStatus.from_wire("Out for Delivery") is OrderStatus.OUT_FOR_DELIVERY
        with pytest.raises(ValidationError, match="Unknown order status"):
            OrderStatus.from_wire("out for delivery")
