"""Order aggregate, the core of the domain.

The Order is an aggregate root that owns its line items. Status changes
go through ``transition_to`` only, which checks the single transition
table below; no other code decides whether a move is legal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from storefront.domain.exceptions import (
    DuplicatePaymentError,
    InvalidTransitionError,
    ValidationError,
)
from storefront.domain.model.value_objects import Money, Quantity, ShippingAddress


class OrderStatus(Enum):
    """Wire values are case-sensitive and shared with carrier payloads."""

    PENDING_PAYMENT = "Pending Payment"
    PAID = "Paid"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_paid_or_later(self) -> bool:
        return self in _FULFILLMENT_CHAIN

    @staticmethod
    def from_wire(value: str) -> OrderStatus:
        try:
            return OrderStatus(value)
        except ValueError:
            raise ValidationError(f"Unknown order status: {value!r}") from None


TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED}
)

# Paid and every status after it, in fulfillment order.
_FULFILLMENT_CHAIN = (
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

_EXITS = frozenset({OrderStatus.CANCELLED, OrderStatus.RETURNED})


def _build_transition_table() -> dict[OrderStatus, frozenset[OrderStatus]]:
    table: dict[OrderStatus, frozenset[OrderStatus]] = {
        OrderStatus.PENDING_PAYMENT: frozenset({OrderStatus.PAID}) | _EXITS,
    }
    for index, status in enumerate(_FULFILLMENT_CHAIN):
        if status.is_terminal:
            continue
        table[status] = frozenset(_FULFILLMENT_CHAIN[index + 1:]) | _EXITS
    for status in TERMINAL_STATUSES:
        table[status] = frozenset()
    return table


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = _build_transition_table()


@dataclass
class OrderItem:
    """Captures the price of a product at order-creation time.

    Neither ``quantity`` nor ``unit_price`` changes afterwards, even when
    the inventory price does; this row drives revenue and stock deduction.
    """

    product_id: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time
    id: int | None = None

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


MAX_LINE_ITEMS = 50


@dataclass
class Order:
    """A customer's purchase: shipping address, frozen lines and status.

    New orders come from ``Order.create()``, which checks the lines and
    fixes the total. Rows loaded back from storage are built directly.
    ``status`` moves only through ``transition_to``.
    """

    id: int | None
    user_id: str
    shipping: ShippingAddress
    items: list[OrderItem]
    total_amount: Money
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    tracking_number: str | None = None
    carrier_name: str | None = None
    tracking_url: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Creation -------------------------------------------------------------

    @staticmethod
    def create(
        user_id: str,
        shipping: ShippingAddress,
        items: list[OrderItem],
        currency: str,
    ) -> Order:
        """Create a new order in Pending Payment with its total frozen."""
        if not user_id or not user_id.strip():
            raise ValidationError("user_id is required")

        if not items:
            raise ValidationError("Order must contain at least one item")

        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        total = Money.zero(currency)
        for item in items:
            total = total + item.line_total

        return Order(
            id=None,
            user_id=user_id.strip(),
            shipping=shipping,
            items=list(items),
            total_amount=total,
        )

    # --- State transitions ----------------------------------------------------

    def transition_to(self, new_status: OrderStatus) -> OrderStatus:
        """Move to *new_status*, returning the status the order left.

        A second move into Paid is reported as a duplicate payment rather
        than a generic illegal move, so callers can treat it as a no-op.
        """
        if new_status is OrderStatus.PAID and self.status.is_paid_or_later:
            raise DuplicatePaymentError(
                f"Order #{self.id} is already {self.status.value}"
            )
        if new_status not in TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move order #{self.id} from {self.status.value} "
                f"to {new_status.value}"
            )
        previous = self.status
        self.status = new_status
        return previous

    def set_tracking(
        self,
        tracking_number: str | None = None,
        carrier_name: str | None = None,
        tracking_url: str | None = None,
    ) -> None:
        if tracking_number:
            self.tracking_number = tracking_number
        if carrier_name:
            self.carrier_name = carrier_name
        if tracking_url:
            self.tracking_url = tracking_url

    # --- Computed properties --------------------------------------------------

    @property
    def quantities(self) -> dict[str, int]:
        return {item.product_id: item.quantity.value for item in self.items}
