"""Test doubles and fixtures shared across the test suite.

The relational side runs on a real in-memory SQLite database so the
conditional updates and compare-and-set writes are exercised for real.
The catalog and the payment provider are in-memory fakes with switches
for injecting failures.
"""

from __future__ import annotations

import copy
from decimal import Decimal

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from storefront.domain.exceptions import ConflictError, EntityNotFoundError, PaymentProviderError
from storefront.domain.gateway.payment_gateway import (
    PaymentGateway,
    PaymentIntent,
    SessionStatus,
)
from storefront.domain.model.inventory import InventoryRecord
from storefront.domain.model.order import Order
from storefront.domain.model.product import CatalogProduct, Category
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.infrastructure.persistence.database import (
    build_engine,
    build_session_factory,
    create_schema,
)
from storefront.infrastructure.persistence.sql_unit_of_work import SqlAlchemyUnitOfWork


# ── Relational store ────────────────────────────────────────────────────────


def memory_session_factory() -> sessionmaker[Session]:
    engine = build_engine("sqlite://")
    create_schema(engine)
    return build_session_factory(engine)


def memory_uow_factory(session_factory: sessionmaker[Session] | None = None):
    factory = session_factory or memory_session_factory()
    return lambda: SqlAlchemyUnitOfWork(factory)


class FailingCommitUnitOfWork(SqlAlchemyUnitOfWork):
    """A unit of work whose commit always fails, leaving nothing durable."""

    def commit(self) -> None:
        raise OperationalError("COMMIT", {}, Exception("database is locked"))


def seed_inventory(uow_factory, product_id: str, stock: int, price: str = "100.00") -> None:
    with uow_factory() as uow:
        uow.inventory.add(
            InventoryRecord(
                product_id=product_id,
                sku=f"SKU-{product_id.upper()}",
                stock_level=stock,
                current_price=Decimal(price),
            )
        )
        uow.commit()


def stock_of(uow_factory, product_id: str) -> int | None:
    with uow_factory() as uow:
        record = uow.inventory.get_by_product_id(product_id)
    return None if record is None else record.stock_level


# ── Catalog store ───────────────────────────────────────────────────────────


class FakeCatalogStore(CatalogStore):

    def __init__(self, categories: list[str] | None = None) -> None:
        self._products: dict[str, CatalogProduct] = {}
        self._categories: dict[str, Category] = {}
        for category_id in categories or []:
            self._categories[category_id] = Category(category_id, category_id.title(), category_id[:3])
        self.fail_insert = False
        self.fail_delete = False
        self.fail_mirror = False

    def get(self, product_id: str) -> CatalogProduct | None:
        product = self._products.get(product_id)
        return copy.deepcopy(product)

    def list_all(self) -> list[CatalogProduct]:
        return [copy.deepcopy(p) for p in self._products.values()]

    def insert(self, product: CatalogProduct) -> None:
        if self.fail_insert:
            raise OSError("catalog unavailable")
        if product.product_id in self._products:
            raise ConflictError(f"Catalog product '{product.product_id}' already exists")
        self._products[product.product_id] = copy.deepcopy(product)

    def replace(self, product: CatalogProduct) -> None:
        if product.product_id not in self._products:
            raise EntityNotFoundError(f"Catalog product '{product.product_id}' not found")
        self._products[product.product_id] = copy.deepcopy(product)

    def delete(self, product_id: str) -> bool:
        if self.fail_delete:
            raise OSError("catalog unavailable")
        return self._products.pop(product_id, None) is not None

    def set_display_stock(self, product_id: str, stock_level: int) -> bool:
        if self.fail_mirror:
            raise OSError("catalog unavailable")
        if product_id not in self._products:
            return False
        self._products[product_id].stock_level = stock_level
        return True

    def set_display_price(self, product_id: str, price: Decimal) -> bool:
        if self.fail_mirror:
            raise OSError("catalog unavailable")
        if product_id not in self._products:
            return False
        self._products[product_id].price_display = price
        return True

    def category_exists(self, category_id: str) -> bool:
        return category_id in self._categories

    def get_category(self, category_id: str) -> Category | None:
        return copy.deepcopy(self._categories.get(category_id))

    def add_category(self, category: Category) -> None:
        self._categories[category.category_id] = copy.deepcopy(category)

    def delete_category(self, category_id: str) -> bool:
        in_use = sum(1 for p in self._products.values() if p.category_id == category_id)
        if in_use:
            raise ConflictError(
                f"Cannot delete category '{category_id}': {in_use} product(s) still use it"
            )
        return self._categories.pop(category_id, None) is not None


# ── Payment provider ────────────────────────────────────────────────────────


class FakePaymentGateway(PaymentGateway):

    name = "fake"

    def __init__(self) -> None:
        self.fail = False
        self.intents: dict[str, int] = {}  # provider ref -> our order id
        self._paid: dict[str, str] = {}  # provider ref -> provider payment ref

    def create_payment_intent(
        self, order: Order, customer_email: str | None = None
    ) -> PaymentIntent:
        if self.fail:
            raise PaymentProviderError("provider unavailable")
        ref = f"order_ref_{order.id}"
        self.intents[ref] = order.id  # type: ignore[assignment]
        return PaymentIntent(
            provider=self.name,
            provider_order_ref=ref,
            checkout_url=f"https://checkout.example/{ref}",
        )

    def mark_paid(self, ref: str, payment_ref: str = "pay_123") -> None:
        self._paid[ref] = payment_ref

    def resolve_session(self, session_id: str) -> SessionStatus:
        if session_id not in self.intents:
            raise PaymentProviderError(f"No such session: {session_id}")
        return SessionStatus(
            provider_order_ref=session_id,
            paid=session_id in self._paid,
            order_id=self.intents[session_id],
            provider_payment_ref=self._paid.get(session_id),
        )
