"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from storefront.application.dto import InventoryLineDTO
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory


class ShowInventoryHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self) -> list[InventoryLineDTO]:
        with self._uow_factory() as uow:
            records = uow.inventory.list_all()
        return [
            InventoryLineDTO(
                product_id=record.product_id,
                sku=record.sku,
                stock_level=record.stock_level,
                current_price=str(record.current_price),
            )
            for record in records
        ]
