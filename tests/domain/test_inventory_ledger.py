"""Tests for the InventoryLedger domain service against a real SQLite ledger."""

import pytest

from storefront.domain.exceptions import (
    EntityNotFoundError,
    FulfillmentConflictError,
    ValidationError,
)
from storefront.domain.service.inventory_ledger import InventoryLedger
from tests.fakes import memory_uow_factory, seed_inventory, stock_of


def _setup(stock: int = 3):
    uow_factory = memory_uow_factory()
    seed_inventory(uow_factory, "prod_a", stock)
    return InventoryLedger(), uow_factory


class TestCheckAndReserve:

    def test_returns_record_with_price(self):
        ledger, uow_factory = _setup(stock=10)
        with uow_factory() as uow:
            record = ledger.check_and_reserve(uow, "prod_a", 10)
        assert str(record.current_price) == "100.00"

    def test_insufficient_stock(self):
        ledger, uow_factory = _setup(stock=3)
        with uow_factory() as uow:
            with pytest.raises(ValidationError, match="Insufficient stock for prod_a"):
                ledger.check_and_reserve(uow, "prod_a", 4)

    def test_unknown_product(self):
        ledger, uow_factory = _setup()
        with uow_factory() as uow:
            with pytest.raises(EntityNotFoundError, match="not found in inventory"):
                ledger.check_and_reserve(uow, "missing", 1)

    def test_check_writes_nothing(self):
        ledger, uow_factory = _setup(stock=3)
        with uow_factory() as uow:
            ledger.check_and_reserve(uow, "prod_a", 2)
            uow.commit()
        assert stock_of(uow_factory, "prod_a") == 3


class TestDecrement:

    def test_decrement_beyond_stock_fails_and_leaves_stock(self):
        ledger, uow_factory = _setup(stock=3)
        with uow_factory() as uow:
            assert ledger.decrement(uow, "prod_a", 5) is False
            uow.commit()
        assert stock_of(uow_factory, "prod_a") == 3

    def test_decrement_to_exactly_zero(self):
        ledger, uow_factory = _setup(stock=3)
        with uow_factory() as uow:
            assert ledger.decrement(uow, "prod_a", 3) is True
            uow.commit()
        assert stock_of(uow_factory, "prod_a") == 0

    def test_uncommitted_decrement_is_rolled_back(self):
        ledger, uow_factory = _setup(stock=3)
        with uow_factory() as uow:
            ledger.decrement(uow, "prod_a", 2)
        assert stock_of(uow_factory, "prod_a") == 3

    def test_non_positive_quantity_rejected(self):
        ledger, uow_factory = _setup()
        with uow_factory() as uow:
            with pytest.raises(ValidationError, match="must be positive"):
                ledger.decrement(uow, "prod_a", 0)

    def test_require_decrement_raises_fulfillment_conflict(self):
        ledger, uow_factory = _setup(stock=1)
        with uow_factory() as uow:
            with pytest.raises(FulfillmentConflictError, match="at payment time"):
                ledger.require_decrement(uow, "prod_a", 2)
