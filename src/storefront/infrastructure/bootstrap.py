"""Composition root: builds the stores, gateways and use cases from Settings.

CLI commands call the factories here; nothing else imports concrete
persistence or gateway classes.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from storefront.application.add_category import AddCategoryHandler
from storefront.application.cart_service import CartService
from storefront.application.confirm_payment import ConfirmPaymentHandler
from storefront.application.create_order import CreateOrderHandler
from storefront.application.delete_category import DeleteCategoryHandler
from storefront.application.product_lifecycle import ProductLifecycleCoordinator
from storefront.application.reconcile_catalog import CatalogReconciler
from storefront.application.shipping_update import ShippingUpdateHandler
from storefront.application.show_inventory import ShowInventoryHandler
from storefront.application.show_order import ShowOrderHandler
from storefront.application.update_category import UpdateCategoryHandler
from storefront.application.update_order_status import UpdateOrderStatusHandler
from storefront.application.webhook_processor import (
    WebhookProcessor,
    WebhookSignatureVerifier,
)
from storefront.domain.exceptions import ConfigurationError
from storefront.domain.gateway.payment_gateway import PaymentGateway
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory
from storefront.domain.service.order_lifecycle import OrderLifecycle
from storefront.infrastructure.config import Settings
from storefront.infrastructure.gateways.razorpay_gateway import RazorpayOrderGateway
from storefront.infrastructure.gateways.stripe_gateway import StripeCheckoutGateway
from storefront.infrastructure.persistence.database import (
    build_engine,
    build_session_factory,
    create_schema,
)
from storefront.infrastructure.persistence.json_catalog_store import JsonCatalogStore
from storefront.infrastructure.persistence.sql_dead_letter_store import (
    SqlDeadLetterStore,
)
from storefront.infrastructure.persistence.sql_unit_of_work import SqlAlchemyUnitOfWork
from storefront.infrastructure.persistence.sql_webhook_inbox import SqlWebhookInbox


@lru_cache(maxsize=1)
def settings() -> Settings:
    return Settings.from_env()


# --- Stores -------------------------------------------------------------------


@lru_cache(maxsize=1)
def session_factory() -> sessionmaker[Session]:
    url = settings().database_url
    database = make_url(url).database
    if url.startswith("sqlite") and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    engine = build_engine(url)
    create_schema(engine)
    return build_session_factory(engine)


def uow_factory() -> UnitOfWorkFactory:
    factory = session_factory()
    return lambda: SqlAlchemyUnitOfWork(factory)


def catalog_store() -> JsonCatalogStore:
    return JsonCatalogStore(settings().catalog_path)


def dead_letter_store() -> SqlDeadLetterStore:
    return SqlDeadLetterStore(session_factory())


def webhook_inbox() -> SqlWebhookInbox:
    return SqlWebhookInbox(session_factory())


def payment_gateway() -> PaymentGateway:
    cfg = settings()
    if cfg.payment_provider == "stripe":
        if not cfg.stripe_secret_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not set")
        return StripeCheckoutGateway(cfg.stripe_secret_key, cfg.frontend_url)
    if not (cfg.razorpay_key_id and cfg.razorpay_key_secret):
        raise ConfigurationError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET must be set")
    return RazorpayOrderGateway(cfg.razorpay_key_id, cfg.razorpay_key_secret)


def order_lifecycle() -> OrderLifecycle:
    return OrderLifecycle(currency=settings().currency)


# --- Use cases ----------------------------------------------------------------


def product_coordinator() -> ProductLifecycleCoordinator:
    return ProductLifecycleCoordinator(uow_factory(), catalog_store())


def add_category_handler() -> AddCategoryHandler:
    return AddCategoryHandler(catalog_store())


def update_category_handler() -> UpdateCategoryHandler:
    return UpdateCategoryHandler(catalog_store())


def delete_category_handler() -> DeleteCategoryHandler:
    return DeleteCategoryHandler(catalog_store())


def catalog_reconciler() -> CatalogReconciler:
    return CatalogReconciler(uow_factory(), catalog_store())


def cart_service() -> CartService:
    return CartService(uow_factory(), currency=settings().currency)


def create_order_handler() -> CreateOrderHandler:
    return CreateOrderHandler(uow_factory(), order_lifecycle(), payment_gateway())


def confirm_payment_handler() -> ConfirmPaymentHandler:
    return ConfirmPaymentHandler(
        uow_factory(), order_lifecycle(), payment_gateway(), catalog_store()
    )


def webhook_processor() -> WebhookProcessor:
    cfg = settings()
    return WebhookProcessor(
        uow_factory(),
        order_lifecycle(),
        catalog_store(),
        dead_letter_store(),
        webhook_inbox(),
        WebhookSignatureVerifier(cfg.razorpay_webhook_secret, source="payment"),
        max_attempts=cfg.webhook_max_attempts,
        retry_delay=timedelta(seconds=cfg.webhook_retry_seconds),
    )


def shipping_update_handler() -> ShippingUpdateHandler:
    return ShippingUpdateHandler(
        uow_factory(),
        order_lifecycle(),
        WebhookSignatureVerifier(settings().shipping_webhook_secret, source="shipping"),
    )


def update_order_status_handler() -> UpdateOrderStatusHandler:
    return UpdateOrderStatusHandler(uow_factory(), order_lifecycle(), catalog_store())


def show_order_handler() -> ShowOrderHandler:
    return ShowOrderHandler(uow_factory())


def show_inventory_handler() -> ShowInventoryHandler:
    return ShowInventoryHandler(uow_factory())
