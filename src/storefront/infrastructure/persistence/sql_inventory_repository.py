"""SQLAlchemy-backed implementation of InventoryRepository."""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.domain.exceptions import ConflictError, EntityNotFoundError
from storefront.domain.model.inventory import InventoryRecord
from storefront.domain.repository.inventory_repository import InventoryRepository
from storefront.infrastructure.persistence.tables import InventoryRow


class SqlInventoryRepository(InventoryRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- InventoryRepository interface ----------------------------------------

    def get_by_product_id(self, product_id: str) -> InventoryRecord | None:
        stmt = (
            select(InventoryRow)
            .where(InventoryRow.product_id == product_id)
            .execution_options(populate_existing=True)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        return None if row is None else self._to_domain(row)

    def list_all(self) -> list[InventoryRecord]:
        stmt = (
            select(InventoryRow)
            .order_by(InventoryRow.product_id)
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(row) for row in self._session.execute(stmt).scalars()]

    def add(self, record: InventoryRecord) -> None:
        self._session.add(
            InventoryRow(
                product_id=record.product_id,
                sku=record.sku,
                stock_level=record.stock_level,
                current_price=record.current_price,
            )
        )
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Inventory for product '{record.product_id}' or SKU "
                f"'{record.sku}' already exists"
            ) from exc

    def update(self, record: InventoryRecord) -> None:
        stmt = (
            update(InventoryRow)
            .where(InventoryRow.product_id == record.product_id)
            .values(stock_level=record.stock_level, current_price=record.current_price)
            .execution_options(synchronize_session=False)
        )
        if self._session.execute(stmt).rowcount != 1:
            raise EntityNotFoundError(
                f"Inventory record not found: '{record.product_id}'"
            )

    def decrement_if_available(self, product_id: str, quantity: int) -> bool:
        stmt = (
            update(InventoryRow)
            .where(
                InventoryRow.product_id == product_id,
                InventoryRow.stock_level >= quantity,
            )
            .values(stock_level=InventoryRow.stock_level - quantity)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1

    def delete(self, product_id: str) -> bool:
        stmt = (
            delete(InventoryRow)
            .where(InventoryRow.product_id == product_id)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount > 0

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_domain(row: InventoryRow) -> InventoryRecord:
        return InventoryRecord(
            product_id=row.product_id,
            sku=row.sku,
            stock_level=row.stock_level,
            current_price=row.current_price,
        )
