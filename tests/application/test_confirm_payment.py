"""Integration tests for the client confirm path and its race with webhooks."""

import json

import pytest
from structlog.testing import capture_logs

from storefront.application.cart_service import CartService
from storefront.application.confirm_payment import ConfirmPaymentHandler
from storefront.application.create_order import CreateOrderHandler
from storefront.application.dto import OrderItemSpec
from storefront.application.webhook_processor import (
    Outcome,
    WebhookProcessor,
    WebhookSignatureVerifier,
)
from storefront.domain.exceptions import (
    DuplicatePaymentError,
    EntityNotFoundError,
    FulfillmentConflictError,
    ValidationError,
)
from storefront.domain.model.order import OrderStatus
from storefront.domain.model.payment import PaymentStatus
from storefront.domain.model.value_objects import ShippingAddress
from storefront.domain.service.order_lifecycle import OrderLifecycle
from storefront.infrastructure.persistence.sql_dead_letter_store import SqlDeadLetterStore
from storefront.infrastructure.persistence.sql_webhook_inbox import SqlWebhookInbox
from tests.fakes import (
    FakeCatalogStore,
    FakePaymentGateway,
    memory_session_factory,
    memory_uow_factory,
    seed_inventory,
    stock_of,
)

SHIPPING = ShippingAddress("Asha", "1 MG Road", "Pune", "MH", "411001")
SECRET = "whsec_test"


def _setup(stock: int = 10):
    session_factory = memory_session_factory()
    uow_factory = memory_uow_factory(session_factory)
    seed_inventory(uow_factory, "prod_a", stock=stock, price="100.00")
    gateway = FakePaymentGateway()
    catalog = FakeCatalogStore()
    lifecycle = OrderLifecycle()
    confirm = ConfirmPaymentHandler(uow_factory, lifecycle, gateway, catalog)
    create = CreateOrderHandler(uow_factory, lifecycle, gateway)
    verifier = WebhookSignatureVerifier(SECRET)
    webhooks = WebhookProcessor(
        uow_factory,
        lifecycle,
        catalog,
        SqlDeadLetterStore(session_factory),
        SqlWebhookInbox(session_factory),
        verifier,
    )
    return confirm, create, webhooks, verifier, uow_factory, gateway


def _order_paid(verifier, ref: str) -> tuple[bytes, str]:
    body = json.dumps(
        {"event": "order.paid", "payload": {"order": {"entity": {"id": ref}}}}
    ).encode()
    return body, verifier.sign(body)


class TestConfirmHappyPath:

    def test_two_units_total_and_stock(self):
        confirm, create, _, _, uow_factory, gateway = _setup()
        CartService(uow_factory).add_item("user-1", "prod_a", 2)
        created = create.handle("user-1", SHIPPING)
        assert created.amount == "200.00"

        gateway.mark_paid(created.provider_order_ref, "pay_abc")
        result = confirm.handle("user-1", created.provider_order_ref)

        assert result.status == "Paid"
        assert result.duplicate is False
        assert stock_of(uow_factory, "prod_a") == 8
        with uow_factory() as uow:
            assert uow.orders.get_by_id(created.order_id).status is OrderStatus.PAID
            assert uow.carts.get_by_user("user-1").is_empty
            payment = uow.payments.get_by_provider_order_ref(created.provider_order_ref)
        assert payment.status is PaymentStatus.SUCCESS
        assert payment.provider_payment_ref == "pay_abc"

    def test_second_confirm_is_duplicate(self):
        confirm, create, _, _, uow_factory, gateway = _setup()
        created = create.handle("user-1", SHIPPING, [OrderItemSpec("prod_a", 2)])
        gateway.mark_paid(created.provider_order_ref)

        confirm.handle("user-1", created.provider_order_ref)
        again = confirm.handle("user-1", created.provider_order_ref)

        assert again.duplicate is True
        assert again.status == "Paid"
        assert stock_of(uow_factory, "prod_a") == 8


class TestConfirmValidation:

    def test_unpaid_session_rejected(self):
        confirm, create, _, _, uow_factory, _ = _setup()
        created = create.handle("user-1", SHIPPING, [OrderItemSpec("prod_a", 1)])
        with pytest.raises(ValidationError, match="Payment not completed"):
            confirm.handle("user-1", created.provider_order_ref)
        assert stock_of(uow_factory, "prod_a") == 10

    def test_other_users_order_not_found(self):
        confirm, create, _, _, _, gateway = _setup()
        created = create.handle("user-1", SHIPPING, [OrderItemSpec("prod_a", 1)])
        gateway.mark_paid(created.provider_order_ref)
        with pytest.raises(EntityNotFoundError):
            confirm.handle("user-2", created.provider_order_ref)

    def test_empty_session_id_rejected(self):
        confirm, _, _, _, _, _ = _setup()
        with pytest.raises(ValidationError, match="Session ID required"):
            confirm.handle("user-1", "")

    def test_stock_gone_at_payment_time_is_critical(self):
        confirm, create, _, _, uow_factory, gateway = _setup(stock=2)
        first = create.handle("user-1", SHIPPING, [OrderItemSpec("prod_a", 2)])
        second = create.handle("user-2", SHIPPING, [OrderItemSpec("prod_a", 2)])
        gateway.mark_paid(first.provider_order_ref)
        gateway.mark_paid(second.provider_order_ref)
        confirm.handle("user-1", first.provider_order_ref)

        with capture_logs() as logs:
            with pytest.raises(FulfillmentConflictError):
                confirm.handle("user-2", second.provider_order_ref)

        assert stock_of(uow_factory, "prod_a") == 0
        with uow_factory() as uow:
            assert uow.orders.get_by_id(second.order_id).status is OrderStatus.PENDING_PAYMENT
        assert any(
            e["event"] == "paid_order_fulfillment_conflict" and e["log_level"] == "critical"
            for e in logs
        )


class TestConfirmAndWebhookRace:

    def test_confirm_then_webhook_decrements_once(self):
        confirm, create, webhooks, verifier, uow_factory, gateway = _setup()
        created = create.handle("user-1", SHIPPING, [OrderItemSpec("prod_a", 2)])
        gateway.mark_paid(created.provider_order_ref)

        confirm.handle("user-1", created.provider_order_ref)
        webhooks.receive(*_order_paid(verifier, created.provider_order_ref))
        [(_, outcome)] = webhooks.process_pending()

        assert outcome is Outcome.DUPLICATE
        assert stock_of(uow_factory, "prod_a") == 8

    def test_webhook_then_confirm_decrements_once(self):
        confirm, create, webhooks, verifier, uow_factory, gateway = _setup()
        created = create.handle("user-1", SHIPPING, [OrderItemSpec("prod_a", 2)])
        gateway.mark_paid(created.provider_order_ref)

        webhooks.receive(*_order_paid(verifier, created.provider_order_ref))
        [(_, outcome)] = webhooks.process_pending()
        result = confirm.handle("user-1", created.provider_order_ref)

        assert outcome is Outcome.APPLIED
        assert result.duplicate is True
        assert stock_of(uow_factory, "prod_a") == 8


# ── Atomicity of the Paid transition ─────────────────────────────────────────


class TestPaidTransitionAtomicity:

    def test_shortage_on_a_later_line_rolls_back_earlier_lines(self):
        confirm, create, _, _, uow_factory, gateway = _setup()
        seed_inventory(uow_factory, "prod_b", stock=1, price="45.50")
        big = create.handle(
            "user-1", SHIPPING, [OrderItemSpec("prod_a", 2), OrderItemSpec("prod_b", 1)]
        )
        small = create.handle("user-2", SHIPPING, [OrderItemSpec("prod_b", 1)])
        gateway.mark_paid(big.provider_order_ref)
        gateway.mark_paid(small.provider_order_ref)
        confirm.handle("user-2", small.provider_order_ref)

        with pytest.raises(FulfillmentConflictError, match="prod_b"):
            confirm.handle("user-1", big.provider_order_ref)

        assert stock_of(uow_factory, "prod_a") == 10
        assert stock_of(uow_factory, "prod_b") == 0
        with uow_factory() as uow:
            assert uow.orders.get_by_id(big.order_id).status is OrderStatus.PENDING_PAYMENT
            payment = uow.payments.get_by_provider_order_ref(big.provider_order_ref)
        assert payment.status is PaymentStatus.CREATED

    def test_losing_the_status_write_raises_duplicate_and_changes_nothing(self):
        confirm, create, _, _, uow_factory, gateway = _setup()
        created = create.handle("user-1", SHIPPING, [OrderItemSpec("prod_a", 2)])
        with uow_factory() as uow:
            stale = uow.orders.get_by_id(created.order_id)

        gateway.mark_paid(created.provider_order_ref)
        confirm.handle("user-1", created.provider_order_ref)

        lifecycle = OrderLifecycle()
        with uow_factory() as uow:
            # Simulate a reader that loaded the order before the other payment committed.
            uow.orders.get_by_id = lambda _order_id: stale
            with pytest.raises(DuplicatePaymentError, match="concurrent request"):
                lifecycle.transition(uow, created.order_id, OrderStatus.PAID)

        assert stock_of(uow_factory, "prod_a") == 8
