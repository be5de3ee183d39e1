"""Application service: per-user cart.

Stock checks here are soft, the same as at order creation: they keep the
customer from adding what is plainly unavailable but reserve nothing.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from storefront.application.dto import CartDTO, CartLineDTO
from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory
from storefront.domain.service.inventory_ledger import InventoryLedger

logger = structlog.get_logger(__name__)


class CartService:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        ledger: InventoryLedger | None = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self._uow_factory = uow_factory
        self._ledger = ledger or InventoryLedger()
        self._currency = currency

    def add_item(self, user_id: str, product_id: str, quantity: int) -> CartDTO:
        """Add *quantity* to the user's line for the product, creating it if needed."""
        qty = Quantity(quantity).value
        with self._uow_factory() as uow:
            cart = uow.carts.get_or_create(user_id)
            existing = sum(i.quantity for i in cart.items if i.product_id == product_id)
            self._ledger.check_and_reserve(uow, product_id, existing + qty)
            uow.carts.add_quantity(cart.id, product_id, qty)
            uow.commit()
        logger.info("cart_item_added", user_id=user_id, product_id=product_id, quantity=qty)
        return self.show(user_id)

    def update_item(self, user_id: str, cart_item_id: int, quantity: int) -> CartDTO:
        qty = Quantity(quantity).value
        with self._uow_factory() as uow:
            item = self._own_item(uow, user_id, cart_item_id)
            self._ledger.check_and_reserve(uow, item.product_id, qty)
            uow.carts.set_quantity(cart_item_id, qty)
            uow.commit()
        return self.show(user_id)

    def remove_item(self, user_id: str, cart_item_id: int) -> CartDTO:
        with self._uow_factory() as uow:
            self._own_item(uow, user_id, cart_item_id)
            uow.carts.remove_item(cart_item_id)
            uow.commit()
        return self.show(user_id)

    def clear(self, user_id: str) -> int:
        with self._uow_factory() as uow:
            removed = uow.carts.clear(user_id)
            uow.commit()
        logger.info("cart_cleared", user_id=user_id, removed=removed)
        return removed

    def show(self, user_id: str) -> CartDTO:
        lines: list[CartLineDTO] = []
        total = Money.zero(self._currency)
        with self._uow_factory() as uow:
            cart = uow.carts.get_by_user(user_id)
            for item in cart.items if cart else []:
                record = uow.inventory.get_by_product_id(item.product_id)
                price = Money(record.current_price if record else Decimal("0"), self._currency)
                line_total = price * item.quantity
                total = total + line_total
                lines.append(
                    CartLineDTO(
                        cart_item_id=item.id,
                        product_id=item.product_id,
                        sku=record.sku if record else "",
                        quantity=item.quantity,
                        unit_price=str(price),
                        line_total=str(line_total),
                        stock_level=record.stock_level if record else 0,
                    )
                )
        return CartDTO(user_id=user_id, items=lines, total=str(total))

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _own_item(uow, user_id: str, cart_item_id: int):
        cart = uow.carts.get_by_user(user_id)
        item = cart.find_item(cart_item_id) if cart else None
        if item is None:
            raise EntityNotFoundError(f"Cart item #{cart_item_id} not found")
        return item

