"""Domain service: Order Lifecycle.

Coordinates the Order aggregate with the inventory ledger, payments and
carts. Every status change in the system, whichever path requests it
(client confirm, provider webhook, admin, carrier), ends up in
``transition``.

The move into Paid is the one that matters for consistency. It is
guarded twice: ``Order.transition_to`` rejects an order that is already
Paid or later, and the status write is a compare-and-set, so two callers
racing on the same order cannot both win. The winner then decrements
stock for every item, marks the payment captured and clears the cart,
all inside the caller's unit of work. Any failure leaves the caller to
roll back, so nothing is partially applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from storefront.domain.exceptions import (
    ConflictError,
    DuplicatePaymentError,
    EntityNotFoundError,
    InvalidTransitionError,
)
from storefront.domain.model.order import Order, OrderItem, OrderStatus
from storefront.domain.model.value_objects import (
    DEFAULT_CURRENCY,
    Money,
    Quantity,
    ShippingAddress,
)
from storefront.domain.repository.unit_of_work import RelationalUnitOfWork
from storefront.domain.service.inventory_ledger import InventoryLedger


@dataclass(frozen=True)
class TransitionResult:
    order: Order
    previous_status: OrderStatus
    # Post-decrement stock per product; only filled by a move into Paid.
    stock_levels: dict[str, int] = field(default_factory=dict)


class OrderLifecycle:

    def __init__(
        self,
        ledger: InventoryLedger | None = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self._ledger = ledger or InventoryLedger()
        self._currency = currency

    # --- Creation -------------------------------------------------------------

    def create(
        self,
        uow: RelationalUnitOfWork,
        user_id: str,
        quantities: dict[str, int],
        shipping: ShippingAddress,
    ) -> Order:
        """Check stock, freeze prices and persist a Pending Payment order.

        All lines are checked before anything is written, so one failing
        line means no order at all.
        """
        items: list[OrderItem] = []
        for product_id, qty in quantities.items():
            quantity = Quantity(qty)
            record = self._ledger.check_and_reserve(uow, product_id, quantity.value)
            items.append(
                OrderItem(
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=Money(record.current_price, self._currency),  # <-- price snapshot
                )
            )

        order = Order.create(
            user_id=user_id,
            shipping=shipping,
            items=items,
            currency=self._currency,
        )
        uow.orders.add(order)
        return order

    # --- Transitions ----------------------------------------------------------

    def transition(
        self,
        uow: RelationalUnitOfWork,
        order_id: int,
        to_status: OrderStatus,
        provider_order_ref: str | None = None,
        provider_payment_ref: str | None = None,
    ) -> TransitionResult:
        order = uow.orders.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")

        previous = order.transition_to(to_status)

        if not uow.orders.compare_and_set_status(order_id, previous, to_status):
            if to_status is OrderStatus.PAID:
                raise DuplicatePaymentError(
                    f"Order #{order_id} was paid by a concurrent request"
                )
            raise InvalidTransitionError(
                f"Order #{order_id} changed status concurrently"
            )

        stock_levels: dict[str, int] = {}
        if to_status is OrderStatus.PAID:
            stock_levels = self._apply_payment(
                uow, order, provider_order_ref, provider_payment_ref
            )

        return TransitionResult(
            order=order, previous_status=previous, stock_levels=stock_levels
        )

    # --- Internal helpers -----------------------------------------------------

    def _apply_payment(
        self,
        uow: RelationalUnitOfWork,
        order: Order,
        provider_order_ref: str | None,
        provider_payment_ref: str | None,
    ) -> dict[str, int]:
        stock_levels: dict[str, int] = {}
        for item in order.items:
            self._ledger.require_decrement(uow, item.product_id, item.quantity.value)
            record = uow.inventory.get_by_product_id(item.product_id)
            if record is not None:
                stock_levels[item.product_id] = record.stock_level

        if provider_order_ref:
            payment = uow.payments.get_by_provider_order_ref(provider_order_ref)
        else:
            payment = uow.payments.latest_for_order(order.id)  # type: ignore[arg-type]
        if payment is not None:
            if payment.order_id != order.id:
                raise ConflictError(
                    f"Payment {provider_order_ref} belongs to order "
                    f"#{payment.order_id}, not #{order.id}"
                )
            uow.payments.mark_success(payment.id, provider_payment_ref)  # type: ignore[arg-type]

        uow.carts.clear(order.user_id)
        return stock_levels
