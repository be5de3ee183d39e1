"""Plain result and input records passed between the CLI and the use cases.

Money leaves the application layer as formatted strings and statuses as
their wire values, so callers never hold domain objects.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: what the customer asked for (product id + quantity)."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class ProductDTO:
    """Output: a product as seen across both stores."""

    product_id: str
    sku: str
    name: str
    category_id: str
    stock_level: int
    current_price: str


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    sku: str
    stock_level: int
    current_price: str


@dataclass(frozen=True)
class CartLineDTO:
    cart_item_id: int
    product_id: str
    sku: str
    quantity: int
    unit_price: str
    line_total: str
    stock_level: int


@dataclass(frozen=True)
class CartDTO:
    user_id: str
    items: list[CartLineDTO]
    total: str


@dataclass(frozen=True)
class OrderCreatedDTO:
    """Output of order creation: what the client needs to start paying."""

    order_id: int
    provider_order_ref: str
    amount: str
    currency: str
    checkout_url: str | None = None

    def to_wire(self) -> dict:
        return {
            "orderId": self.order_id,
            "providerOrderRef": self.provider_order_ref,
            "amount": self.amount,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class PaymentConfirmationDTO:
    order_id: int
    status: str
    duplicate: bool = False


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_id: str
    quantity: int
    unit_price: str  # formatted, e.g. "INR 100.00"
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: int
    user_id: str
    status: str
    items: list[OrderLineItemDTO]
    total: str
    shipping: str
    tracking_number: str | None
    carrier_name: str | None
    tracking_url: str | None
    created_at: str


@dataclass(frozen=True)
class OrderStatusChangeDTO:
    order_id: int
    previous_status: str
    status: str
    changed: bool = True
