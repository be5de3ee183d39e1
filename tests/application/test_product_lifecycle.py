"""Integration tests for the ProductLifecycleCoordinator.

The relational store is in-memory SQLite; the catalog is a fake that can
be told to fail, so every compensation path is reachable.
"""

from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from storefront.application.product_lifecycle import ProductLifecycleCoordinator
from storefront.domain.exceptions import (
    ConflictError,
    EntityNotFoundError,
    PartialFailureError,
    UnrecoverablePartialState,
    ValidationError,
)
from storefront.domain.model.order import OrderStatus
from storefront.domain.model.value_objects import ShippingAddress
from storefront.domain.service.order_lifecycle import OrderLifecycle
from tests.fakes import (
    FailingCommitUnitOfWork,
    FakeCatalogStore,
    memory_session_factory,
    memory_uow_factory,
    stock_of,
)

SHIPPING = ShippingAddress("Asha", "1 MG Road", "Pune", "MH", "411001")


def _spec(**overrides) -> dict:
    spec = {
        "product_id": "prod_a",
        "name": "Phone",
        "category_id": "phones",
        "stock_level": 10,
        "current_price": "100",
    }
    spec.update(overrides)
    return spec


def _setup(failing_commit: bool = False):
    session_factory = memory_session_factory()
    uow_factory = memory_uow_factory(session_factory)
    catalog = FakeCatalogStore(categories=["phones"])
    coordinator = ProductLifecycleCoordinator(uow_factory, catalog)
    if failing_commit:
        failing = ProductLifecycleCoordinator(
            lambda: FailingCommitUnitOfWork(session_factory), catalog
        )
        return coordinator, failing, uow_factory, catalog
    return coordinator, uow_factory, catalog


class TestCreateProductHappyPath:

    def test_both_stores_hold_the_product(self):
        coordinator, uow_factory, catalog = _setup()
        dto = coordinator.create_product(_spec())
        assert dto.product_id == "prod_a"
        assert stock_of(uow_factory, "prod_a") == 10
        document = catalog.get("prod_a")
        assert document.stock_level == 10
        assert document.price_display == Decimal("100.00")

    def test_defaults_sku_and_generates_id(self):
        coordinator, _, _ = _setup()
        dto = coordinator.create_product(_spec(product_id=None, sku=None))
        assert dto.product_id.startswith("prod_")
        assert len(dto.product_id) == len("prod_") + 12
        assert dto.sku == f"SKU-{dto.product_id.upper()}"

    def test_loose_input_is_normalized(self):
        coordinator, _, catalog = _setup()
        coordinator.create_product(
            _spec(images="a.jpg", display_flags=None, technical_specs="6 inch screen")
        )
        document = catalog.get("prod_a")
        assert document.images == ["a.jpg"]
        assert document.display_flags == []
        assert document.technical_specs == {"description": "6 inch screen"}


class TestCreateProductValidation:

    def test_unknown_category_rejected(self):
        coordinator, uow_factory, catalog = _setup()
        with pytest.raises(ValidationError, match="Unknown category"):
            coordinator.create_product(_spec(category_id="laptops"))
        assert stock_of(uow_factory, "prod_a") is None
        assert catalog.get("prod_a") is None

    def test_negative_stock_rejected(self):
        coordinator, _, _ = _setup()
        with pytest.raises(ValidationError, match="cannot be negative"):
            coordinator.create_product(_spec(stock_level=-1))

    def test_non_numeric_price_rejected(self):
        coordinator, _, _ = _setup()
        with pytest.raises(ValidationError, match="current_price must be a number"):
            coordinator.create_product(_spec(current_price="cheap"))

    def test_duplicate_sku_writes_nothing(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec(sku="SKU-1"))
        with pytest.raises(ConflictError):
            coordinator.create_product(_spec(product_id="prod_b", sku="SKU-1"))
        assert stock_of(uow_factory, "prod_b") is None
        assert catalog.get("prod_b") is None


class TestCreateProductCompensation:

    def test_catalog_failure_rolls_back_inventory(self):
        coordinator, uow_factory, catalog = _setup()
        catalog.fail_insert = True
        with pytest.raises(PartialFailureError):
            coordinator.create_product(_spec())
        assert stock_of(uow_factory, "prod_a") is None
        assert catalog.get("prod_a") is None

    def test_commit_failure_deletes_document(self):
        _, failing, uow_factory, catalog = _setup(failing_commit=True)
        with pytest.raises(PartialFailureError):
            failing.create_product(_spec())
        assert stock_of(uow_factory, "prod_a") is None
        assert catalog.get("prod_a") is None

    def test_failed_compensation_is_critical_and_unrecoverable(self):
        _, failing, uow_factory, catalog = _setup(failing_commit=True)
        catalog.fail_delete = True
        with capture_logs() as logs:
            with pytest.raises(UnrecoverablePartialState) as info:
                failing.create_product(_spec())
        assert info.value.product_id == "prod_a"
        assert any(
            e["log_level"] == "critical" and e["event"] == "compensation_failed" for e in logs
        )
        # The orphaned document is left for the reconciler.
        assert catalog.get("prod_a") is not None
        assert stock_of(uow_factory, "prod_a") is None


class TestDeleteProduct:

    def test_unreferenced_product_removed_from_both(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec())
        coordinator.delete_product("prod_a")
        assert stock_of(uow_factory, "prod_a") is None
        assert catalog.get("prod_a") is None

    def test_active_order_blocks_delete(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec())
        with uow_factory() as uow:
            OrderLifecycle().create(uow, "user-1", {"prod_a": 1}, SHIPPING)
            uow.commit()

        with pytest.raises(ConflictError, match="referenced by 1 item"):
            coordinator.delete_product("prod_a")
        assert stock_of(uow_factory, "prod_a") == 10
        assert catalog.get("prod_a") is not None

    def test_closed_orders_do_not_block_delete(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec())
        lifecycle = OrderLifecycle()
        with uow_factory() as uow:
            order = lifecycle.create(uow, "user-1", {"prod_a": 1}, SHIPPING)
            lifecycle.transition(uow, order.id, OrderStatus.CANCELLED)
            uow.commit()

        coordinator.delete_product("prod_a")
        assert catalog.get("prod_a") is None

    def test_unknown_product(self):
        coordinator, _, _ = _setup()
        with pytest.raises(EntityNotFoundError):
            coordinator.delete_product("missing")

    def test_catalog_failure_keeps_inventory(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec())
        catalog.fail_delete = True
        with pytest.raises(PartialFailureError):
            coordinator.delete_product("prod_a")
        assert stock_of(uow_factory, "prod_a") == 10

    def test_commit_failure_restores_document(self):
        coordinator, failing, uow_factory, catalog = _setup(failing_commit=True)
        coordinator.create_product(_spec())
        with pytest.raises(PartialFailureError):
            failing.delete_product("prod_a")
        assert stock_of(uow_factory, "prod_a") == 10
        assert catalog.get("prod_a").name == "Phone"


class TestSingleStoreUpdates:

    def test_update_details_touches_catalog_only(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec())
        coordinator.update_details("prod_a", {"name": "Phone 2", "display_flags": "new"})
        document = catalog.get("prod_a")
        assert document.name == "Phone 2"
        assert document.display_flags == ["new"]

    def test_update_details_cannot_change_id(self):
        coordinator, _, _ = _setup()
        coordinator.create_product(_spec())
        with pytest.raises(ValidationError, match="product_id cannot be changed"):
            coordinator.update_details("prod_a", {"product_id": "prod_b"})

    def test_update_inventory_mirrors_to_catalog(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec())
        line = coordinator.update_inventory("prod_a", stock_level="4", current_price="129.5")
        assert line.current_price == "129.50"
        assert stock_of(uow_factory, "prod_a") == 4
        document = catalog.get("prod_a")
        assert document.stock_level == 4
        assert document.price_display == Decimal("129.50")

    def test_mirror_failure_is_a_warning_not_an_error(self):
        coordinator, uow_factory, catalog = _setup()
        coordinator.create_product(_spec())
        catalog.fail_mirror = True
        with capture_logs() as logs:
            coordinator.update_inventory("prod_a", stock_level=2)
        assert stock_of(uow_factory, "prod_a") == 2
        assert any(
            e["event"] == "catalog_mirror_failed" and e["log_level"] == "warning" for e in logs
        )
