"""Application service: admin order-status update."""

from __future__ import annotations

import structlog

from storefront.application.catalog_sync import mirror_stock_levels
from storefront.application.dto import OrderStatusChangeDTO
from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.model.order import OrderStatus
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory
from storefront.domain.service.order_lifecycle import OrderLifecycle

logger = structlog.get_logger(__name__)


class UpdateOrderStatusHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        lifecycle: OrderLifecycle,
        catalog: CatalogStore,
    ) -> None:
        self._uow_factory = uow_factory
        self._lifecycle = lifecycle
        self._catalog = catalog

    def handle(
        self,
        order_id: int,
        status: str,
        tracking_number: str | None = None,
        carrier_name: str | None = None,
        tracking_url: str | None = None,
    ) -> OrderStatusChangeDTO:
        """Move an order through the transition table and record tracking data.

        Setting the status an order already has only updates tracking.
        """
        target = OrderStatus.from_wire(status)
        stock_levels: dict[str, int] = {}

        with self._uow_factory() as uow:
            order = uow.orders.get_by_id(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order #{order_id} not found")
            previous = order.status

            if target is not previous:
                result = self._lifecycle.transition(uow, order_id, target)
                stock_levels = result.stock_levels

            if tracking_number or carrier_name or tracking_url:
                order.set_tracking(tracking_number, carrier_name, tracking_url)
                uow.orders.save_tracking(order)
            uow.commit()

        logger.info(
            "order_status_updated",
            order_id=order_id,
            previous_status=previous.value,
            status=target.value,
            tracking_number=tracking_number,
        )
        mirror_stock_levels(self._catalog, stock_levels)
        return OrderStatusChangeDTO(
            order_id=order_id,
            previous_status=previous.value,
            status=target.value,
            changed=target is not previous,
        )
