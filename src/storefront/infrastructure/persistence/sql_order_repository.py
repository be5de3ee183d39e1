"""SQLAlchemy-backed implementation of OrderRepository."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from storefront.domain.model.order import (
    TERMINAL_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
)
from storefront.domain.model.value_objects import Money, Quantity, ShippingAddress
from storefront.domain.repository.order_repository import OrderRepository
from storefront.infrastructure.persistence.tables import OrderItemRow, OrderRow


class SqlOrderRepository(OrderRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- OrderRepository interface --------------------------------------------

    def add(self, order: Order) -> None:
        row = self._to_row(order)
        self._session.add(row)
        self._session.flush()
        order.id = row.order_id
        for item, item_row in zip(order.items, row.items):
            item.id = item_row.order_item_id

    def get_by_id(self, order_id: int) -> Order | None:
        return self._first(select(OrderRow).where(OrderRow.order_id == order_id))

    def get_by_tracking_number(self, tracking_number: str) -> Order | None:
        return self._first(
            select(OrderRow).where(OrderRow.tracking_number == tracking_number)
        )

    def list_for_user(self, user_id: str) -> list[Order]:
        stmt = (
            select(OrderRow)
            .where(OrderRow.user_id == user_id)
            .order_by(OrderRow.created_at.desc(), OrderRow.order_id.desc())
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(row) for row in self._session.execute(stmt).scalars()]

    def compare_and_set_status(
        self, order_id: int, expected: OrderStatus, new: OrderStatus
    ) -> bool:
        stmt = (
            update(OrderRow)
            .where(OrderRow.order_id == order_id, OrderRow.status == expected.value)
            .values(status=new.value)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1

    def save_tracking(self, order: Order) -> None:
        stmt = (
            update(OrderRow)
            .where(OrderRow.order_id == order.id)
            .values(
                tracking_number=order.tracking_number,
                carrier_name=order.carrier_name,
                tracking_url=order.tracking_url,
            )
            .execution_options(synchronize_session=False)
        )
        self._session.execute(stmt)

    def count_active_references(self, product_id: str) -> int:
        stmt = (
            select(func.count(OrderItemRow.order_item_id))
            .join(OrderRow, OrderRow.order_id == OrderItemRow.order_id)
            .where(
                OrderItemRow.product_id == product_id,
                OrderRow.status.not_in([s.value for s in TERMINAL_STATUSES]),
            )
        )
        return self._session.execute(stmt).scalar_one()

    # --- Serialization --------------------------------------------------------

    def _first(self, stmt) -> Order | None:
        row = self._session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return None if row is None else self._to_domain(row)

    @staticmethod
    def _to_row(order: Order) -> OrderRow:
        return OrderRow(
            user_id=order.user_id,
            shipping_name=order.shipping.name,
            shipping_line1=order.shipping.line1,
            shipping_city=order.shipping.city,
            shipping_state=order.shipping.state,
            shipping_pincode=order.shipping.postal_code,
            total_amount=order.total_amount.quantized(),
            currency=order.total_amount.currency,
            status=order.status.value,
            tracking_number=order.tracking_number,
            carrier_name=order.carrier_name,
            tracking_url=order.tracking_url,
            created_at=order.created_at,
            items=[
                OrderItemRow(
                    product_id=item.product_id,
                    quantity=item.quantity.value,
                    unit_price=item.unit_price.quantized(),
                )
                for item in order.items
            ],
        )

    @staticmethod
    def _to_domain(row: OrderRow) -> Order:
        items = [
            OrderItem(
                id=i.order_item_id,
                product_id=i.product_id,
                quantity=Quantity(i.quantity),
                unit_price=Money(Decimal(i.unit_price), row.currency),
            )
            for i in row.items
        ]
        return Order(
            id=row.order_id,
            user_id=row.user_id,
            shipping=ShippingAddress(
                name=row.shipping_name,
                line1=row.shipping_line1,
                city=row.shipping_city,
                state=row.shipping_state,
                postal_code=row.shipping_pincode,
            ),
            items=items,
            total_amount=Money(Decimal(row.total_amount), row.currency),
            status=OrderStatus(row.status),
            tracking_number=row.tracking_number,
            carrier_name=row.carrier_name,
            tracking_url=row.tracking_url,
            created_at=row.created_at,
        )
