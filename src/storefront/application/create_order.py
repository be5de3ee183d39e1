"""Application service: Create Order use case.

The order is committed first, then registered with the payment provider
outside any transaction, then the local Payment record is written in a
second unit of work. The provider call can be slow and must not hold the
database write lock. If the provider refuses the order, or the Payment
cannot be recorded, the order is moved to Cancelled so it never waits
for a payment that cannot arrive.
"""

from __future__ import annotations

import structlog

from storefront.application.dto import OrderCreatedDTO, OrderItemSpec
from storefront.domain.exceptions import PaymentProviderError, ValidationError
from storefront.domain.gateway.payment_gateway import PaymentGateway
from storefront.domain.model.order import MAX_LINE_ITEMS, OrderStatus
from storefront.domain.model.payment import Payment
from storefront.domain.model.value_objects import ShippingAddress
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory
from storefront.domain.service.order_lifecycle import OrderLifecycle

logger = structlog.get_logger(__name__)


class CreateOrderHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        lifecycle: OrderLifecycle,
        gateway: PaymentGateway,
    ) -> None:
        self._uow_factory = uow_factory
        self._lifecycle = lifecycle
        self._gateway = gateway

    def handle(
        self,
        user_id: str,
        shipping: ShippingAddress,
        items: list[OrderItemSpec] | None = None,
        customer_email: str | None = None,
    ) -> OrderCreatedDTO:
        """Create a Pending Payment order and its payment intent.

        Steps:
        1. Resolve the lines: explicit items, or the user's cart.
        2. Soft-check stock, freeze prices and commit the order.
        3. Register the order with the payment provider, no transaction open.
        4. Record the Payment in a second unit of work.
        """
        log = logger.bind(user_id=user_id)

        with self._uow_factory() as uow:
            if items is None:
                cart = uow.carts.get_by_user(user_id)
                if cart is None or cart.is_empty:
                    raise ValidationError("Cart is empty")
                quantities = cart.quantities()
            else:
                quantities = self._merge(items)

            if len(quantities) > MAX_LINE_ITEMS:
                raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

            order = self._lifecycle.create(uow, user_id, quantities, shipping)
            uow.commit()
        order_id: int = order.id  # type: ignore[assignment]
        log = log.bind(order_id=order_id)

        try:
            intent = self._gateway.create_payment_intent(order, customer_email)
        except PaymentProviderError:
            log.error("payment_intent_failed", provider=self._gateway.name)
            self._cancel(order_id, log)
            raise

        try:
            with self._uow_factory() as uow:
                uow.payments.add(
                    Payment(
                        id=None,
                        order_id=order_id,
                        provider=intent.provider,
                        provider_order_ref=intent.provider_order_ref,
                        amount=order.total_amount,
                    )
                )
                uow.commit()
        except Exception:
            log.error(
                "payment_record_failed",
                provider=intent.provider,
                provider_order_ref=intent.provider_order_ref,
            )
            self._cancel(order_id, log)
            raise

        log.info(
            "order_created",
            total=str(order.total_amount),
            provider_order_ref=intent.provider_order_ref,
        )
        return OrderCreatedDTO(
            order_id=order_id,
            provider_order_ref=intent.provider_order_ref,
            amount=str(order.total_amount.quantized()),
            currency=order.total_amount.currency,
            checkout_url=intent.checkout_url,
        )

    def _cancel(self, order_id: int, log) -> None:
        with self._uow_factory() as uow:
            self._lifecycle.transition(uow, order_id, OrderStatus.CANCELLED)
            uow.commit()
        log.warning("order_cancelled_unpayable")

    # --- Input normalization --------------------------------------------------

    @staticmethod
    def _merge(items: list[OrderItemSpec]) -> dict[str, int]:
        if not items:
            raise ValidationError("Order must contain at least one item")
        quantities: dict[str, int] = {}
        for spec in items:
            product_id = (spec.product_id or "").strip()
            if not product_id:
                raise ValidationError("Each item needs a product_id")
            if isinstance(spec.quantity, bool) or not isinstance(spec.quantity, int):
                raise ValidationError(f"Quantity for {product_id} must be an integer")
            if spec.quantity <= 0:
                raise ValidationError(f"Quantity for {product_id} must be positive")
            quantities[product_id] = quantities.get(product_id, 0) + spec.quantity
        return quantities
