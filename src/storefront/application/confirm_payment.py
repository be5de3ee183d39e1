"""Application service: Confirm Payment use case (client path).

The client comes back from the provider's checkout with a session id.
The provider, not the client, says whether it was paid and which order
it belongs to. The Paid transition is the same one the webhook path
runs, so whichever path arrives second sees a duplicate and does nothing.
"""

from __future__ import annotations

import structlog

from storefront.application.catalog_sync import mirror_stock_levels
from storefront.application.dto import PaymentConfirmationDTO
from storefront.domain.exceptions import (
    DuplicatePaymentError,
    EntityNotFoundError,
    FulfillmentConflictError,
    ValidationError,
)
from storefront.domain.gateway.payment_gateway import PaymentGateway
from storefront.domain.model.order import OrderStatus
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory
from storefront.domain.service.order_lifecycle import OrderLifecycle

logger = structlog.get_logger(__name__)


class ConfirmPaymentHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        lifecycle: OrderLifecycle,
        gateway: PaymentGateway,
        catalog: CatalogStore,
    ) -> None:
        self._uow_factory = uow_factory
        self._lifecycle = lifecycle
        self._gateway = gateway
        self._catalog = catalog

    def handle(self, user_id: str, session_id: str) -> PaymentConfirmationDTO:
        if not session_id:
            raise ValidationError("Session ID required")

        session = self._gateway.resolve_session(session_id)
        if not session.paid:
            raise ValidationError("Payment not completed")
        if session.order_id is None:
            raise ValidationError("Invalid session metadata")

        order_id = session.order_id
        log = logger.bind(order_id=order_id, user_id=user_id, path="confirm")

        with self._uow_factory() as uow:
            order = uow.orders.get_by_id(order_id)
            if order is None or order.user_id != user_id:
                raise EntityNotFoundError(f"Order #{order_id} not found")

            try:
                result = self._lifecycle.transition(
                    uow,
                    order_id,
                    OrderStatus.PAID,
                    provider_order_ref=session.provider_order_ref,
                    provider_payment_ref=session.provider_payment_ref,
                )
            except DuplicatePaymentError:
                log.info("payment_already_applied")
                current = uow.orders.get_by_id(order_id)
                return PaymentConfirmationDTO(
                    order_id=order_id,
                    status=current.status.value if current else order.status.value,
                    duplicate=True,
                )
            except FulfillmentConflictError as exc:
                log.critical("paid_order_fulfillment_conflict", error=str(exc))
                raise
            uow.commit()

        log.info("payment_applied", stock_levels=result.stock_levels)
        mirror_stock_levels(self._catalog, result.stock_levels)
        return PaymentConfirmationDTO(order_id=order_id, status=OrderStatus.PAID.value)
