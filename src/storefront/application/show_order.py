"""Application service: Show Order use case (query)."""

from __future__ import annotations

from storefront.application.dto import OrderDTO, OrderLineItemDTO
from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.model.order import Order
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory


class ShowOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, order_id: int, user_id: str | None = None) -> OrderDTO:
        """Return one order; with *user_id*, only if that user owns it."""
        with self._uow_factory() as uow:
            order = uow.orders.get_by_id(order_id)
        if order is None or (user_id is not None and order.user_id != user_id):
            raise EntityNotFoundError(f"Order #{order_id} not found")
        return self._to_dto(order)

    def list_for_user(self, user_id: str) -> list[OrderDTO]:
        with self._uow_factory() as uow:
            orders = uow.orders.list_for_user(user_id)
        return [self._to_dto(order) for order in orders]

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_dto(order: Order) -> OrderDTO:
        shipping = order.shipping
        return OrderDTO(
            id=order.id,  # type: ignore[arg-type]
            user_id=order.user_id,
            status=order.status.value,
            items=[
                OrderLineItemDTO(
                    product_id=item.product_id,
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                )
                for item in order.items
            ],
            total=str(order.total_amount),
            shipping=(
                f"{shipping.name}, {shipping.line1}, {shipping.city}, "
                f"{shipping.state} {shipping.postal_code}"
            ),
            tracking_number=order.tracking_number,
            carrier_name=order.carrier_name,
            tracking_url=order.tracking_url,
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        )
