"""Application service: Product Lifecycle across both stores.

A product is two records: an inventory row in the relational store and
a display document in the catalog store, joined by ``product_id``. The
stores share no transaction, so every create/delete follows one shape:

1. do the relational work in a unit of work and flush, without committing;
2. do the single document write;
3. commit.

A failure in step 2 is undone by rolling back step 1. A failure in step
3 is undone by reversing the document write. Both go through
``_compensate``, which raises PartialFailureError when the undo worked
and UnrecoverablePartialState when it did not. The only state left
behind by the latter is an orphaned catalog document, which the
CatalogReconciler removes.
"""

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, NoReturn

import structlog

from storefront.application.catalog_sync import mirror_price, mirror_stock_levels
from storefront.application.dto import InventoryLineDTO, ProductDTO
from storefront.domain.exceptions import (
    ConflictError,
    EntityNotFoundError,
    PartialFailureError,
    UnrecoverablePartialState,
    ValidationError,
)
from storefront.domain.model.inventory import InventoryRecord
from storefront.domain.model.product import (
    CatalogProduct,
    normalize_specs,
    normalize_string_list,
)
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory

logger = structlog.get_logger(__name__)

_CENT = Decimal("0.01")


def generate_product_id() -> str:
    return f"prod_{uuid.uuid4().hex[:12]}"


class ProductLifecycleCoordinator:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        catalog: CatalogStore,
        id_factory: Callable[[], str] = generate_product_id,
    ) -> None:
        self._uow_factory = uow_factory
        self._catalog = catalog
        self._id_factory = id_factory

    # --- Create ---------------------------------------------------------------

    def create_product(self, spec: dict[str, Any]) -> ProductDTO:
        """Create the inventory row and the catalog document, or neither."""
        record, document = self._build(spec)
        log = logger.bind(product_id=record.product_id, sku=record.sku)

        with self._uow_factory() as uow:
            uow.inventory.add(record)  # ConflictError: nothing written yet

            try:
                self._catalog.insert(document)
            except ConflictError:
                raise
            except Exception as exc:
                self._compensate(log, record.product_id, "rollback_inventory", uow.rollback, exc)

            try:
                uow.commit()
            except Exception as exc:
                self._compensate(
                    log,
                    record.product_id,
                    "delete_catalog_document",
                    lambda: self._catalog.delete(record.product_id),
                    exc,
                )

        log.info("product_created", category_id=document.category_id)
        return ProductDTO(
            product_id=record.product_id,
            sku=record.sku,
            name=document.name,
            category_id=document.category_id,
            stock_level=record.stock_level,
            current_price=str(record.current_price),
        )

    # --- Delete ---------------------------------------------------------------

    def delete_product(self, product_id: str) -> None:
        """Delete both records, refusing while open orders reference the product."""
        log = logger.bind(product_id=product_id)

        with self._uow_factory() as uow:
            active = uow.orders.count_active_references(product_id)
            if active:
                raise ConflictError(
                    f"Product '{product_id}' is referenced by {active} item(s) "
                    f"in orders that are not yet closed"
                )
            if not uow.inventory.delete(product_id):
                raise EntityNotFoundError(f"Product not found in inventory: '{product_id}'")

            snapshot = self._catalog.get(product_id)
            if snapshot is None:
                log.warning("catalog_document_already_missing")
            else:
                try:
                    self._catalog.delete(product_id)
                except Exception as exc:
                    self._compensate(log, product_id, "rollback_inventory", uow.rollback, exc)

            try:
                uow.commit()
            except Exception as exc:
                if snapshot is None:
                    raise
                self._compensate(
                    log,
                    product_id,
                    "restore_catalog_document",
                    lambda: self._catalog.insert(snapshot),
                    exc,
                )

        log.info("product_deleted")

    # --- Single-store updates -------------------------------------------------

    def update_details(self, product_id: str, changes: dict[str, Any]) -> None:
        """Edit display fields; only the catalog document changes."""
        if not changes:
            raise ValidationError("No product fields to update")
        document = self._catalog.get(product_id)
        if document is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")
        document.apply_changes(changes)
        if "category_id" in changes and not self._catalog.category_exists(document.category_id):
            raise ValidationError(f"Unknown category: '{document.category_id}'")
        self._catalog.replace(document)
        logger.info("product_details_updated", product_id=product_id, fields=sorted(changes))

    def update_inventory(
        self,
        product_id: str,
        stock_level: Any = None,
        current_price: Any = None,
    ) -> InventoryLineDTO:
        """Set stock and/or price in the ledger, then mirror them for display."""
        if stock_level is None and current_price is None:
            raise ValidationError("Nothing to update: give a stock level or a price")

        with self._uow_factory() as uow:
            current = uow.inventory.get_by_product_id(product_id)
            if current is None:
                raise EntityNotFoundError(f"Product not found in inventory: '{product_id}'")
            record = InventoryRecord(
                product_id=current.product_id,
                sku=current.sku,
                stock_level=(
                    current.stock_level if stock_level is None
                    else _parse_stock(stock_level)
                ),
                current_price=(
                    current.current_price if current_price is None
                    else _parse_price(current_price)
                ),
            )
            uow.inventory.update(record)
            uow.commit()

        logger.info(
            "inventory_updated",
            product_id=product_id,
            stock_level=record.stock_level,
            current_price=str(record.current_price),
        )
        if stock_level is not None:
            mirror_stock_levels(self._catalog, {product_id: record.stock_level})
        if current_price is not None:
            mirror_price(self._catalog, product_id, record.current_price)

        return InventoryLineDTO(
            product_id=record.product_id,
            sku=record.sku,
            stock_level=record.stock_level,
            current_price=str(record.current_price),
        )

    # --- Compensation ---------------------------------------------------------

    @staticmethod
    def _compensate(
        log,
        product_id: str,
        action: str,
        undo: Callable[[], object],
        cause: Exception,
    ) -> NoReturn:
        log.error(
            "cross_store_write_failed",
            compensation=action,
            error=str(cause),
            error_type=type(cause).__name__,
        )
        try:
            undo()
        except Exception as undo_exc:
            log.critical(
                "compensation_failed",
                compensation=action,
                error=str(undo_exc),
                error_type=type(undo_exc).__name__,
            )
            raise UnrecoverablePartialState(
                f"Stores disagree about product '{product_id}': {action} failed "
                f"({undo_exc}); run the catalog reconciler",
                product_id=product_id,
            ) from undo_exc
        log.info("compensation_succeeded", compensation=action)
        raise PartialFailureError(
            f"Write for product '{product_id}' failed and was undone: {cause}"
        ) from cause

    # --- Input normalization --------------------------------------------------

    def _build(self, spec: dict[str, Any]) -> tuple[InventoryRecord, CatalogProduct]:
        category_id = str(spec.get("category_id") or "").strip()
        if not category_id:
            raise ValidationError("category_id is required")
        if not self._catalog.category_exists(category_id):
            raise ValidationError(f"Unknown category: '{category_id}'")

        name = str(spec.get("name") or "").strip()
        if not name:
            raise ValidationError("Product name is required")

        product_id = str(spec.get("product_id") or "").strip() or self._id_factory()
        sku = str(spec.get("sku") or "").strip() or f"SKU-{product_id.upper()}"
        stock_level = _parse_stock(spec.get("stock_level", 0))
        price = _parse_price(spec.get("current_price", 0))

        record = InventoryRecord(
            product_id=product_id,
            sku=sku,
            stock_level=stock_level,
            current_price=price,
        )
        document = CatalogProduct(
            product_id=product_id,
            category_id=category_id,
            name=name,
            description=str(spec.get("description") or ""),
            price_display=price,
            images=normalize_string_list(spec.get("images")),
            technical_specs=normalize_specs(spec.get("technical_specs", {})),
            display_flags=normalize_string_list(spec.get("display_flags")),
            stock_level=stock_level,
        )
        return record, document


def _parse_stock(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("stock_level must be a number")
    try:
        number = Decimal(str(value if value not in (None, "") else 0))
    except InvalidOperation:
        raise ValidationError(f"stock_level must be a number, got {value!r}") from None
    if number != number.to_integral_value():
        raise ValidationError(f"stock_level must be a whole number, got {value!r}")
    if number < 0:
        raise ValidationError("stock_level cannot be negative")
    return int(number)


def _parse_price(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("current_price must be a number")
    try:
        price = Decimal(str(value if value not in (None, "") else 0))
    except InvalidOperation:
        raise ValidationError(f"current_price must be a number, got {value!r}") from None
    if not price.is_finite() or price < 0:
        raise ValidationError("current_price must be a non-negative number")
    return price.quantize(_CENT)
