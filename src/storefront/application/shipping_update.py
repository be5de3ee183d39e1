"""Application service: carrier tracking webhook.

Carriers send the order status wire value directly, e.g.::

    {"tracking_number": "TRK123", "new_status": "Out for Delivery",
     "is_final_status": false}

The value must be one of the order statuses and the move must be legal
in the transition table; a repeat of the current status is a no-op.
"""

from __future__ import annotations

import json

import structlog

from storefront.application.dto import OrderStatusChangeDTO
from storefront.application.webhook_processor import WebhookSignatureVerifier
from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.model.order import OrderStatus
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory
from storefront.domain.service.order_lifecycle import OrderLifecycle

logger = structlog.get_logger(__name__)


class ShippingUpdateHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        lifecycle: OrderLifecycle,
        verifier: WebhookSignatureVerifier,
    ) -> None:
        self._uow_factory = uow_factory
        self._lifecycle = lifecycle
        self._verifier = verifier

    def handle(self, body: bytes, signature: str | None) -> OrderStatusChangeDTO:
        self._verifier.verify(body, signature)
        tracking_number, target, is_final = self._parse(body)
        log = logger.bind(tracking_number=tracking_number, status=target.value)

        with self._uow_factory() as uow:
            order = uow.orders.get_by_tracking_number(tracking_number)
            if order is None:
                raise EntityNotFoundError("Tracking number not found in system")
            previous = order.status
            log = log.bind(order_id=order.id, previous_status=previous.value)

            if target is previous:
                log.info("shipping_update_unchanged")
                return OrderStatusChangeDTO(
                    order_id=order.id,  # type: ignore[arg-type]
                    previous_status=previous.value,
                    status=target.value,
                    changed=False,
                )

            self._lifecycle.transition(uow, order.id, target)  # type: ignore[arg-type]
            uow.commit()

        log.info("shipping_update_applied", is_final_status=is_final)
        return OrderStatusChangeDTO(
            order_id=order.id,  # type: ignore[arg-type]
            previous_status=previous.value,
            status=target.value,
        )

    @staticmethod
    def _parse(body: bytes) -> tuple[str, OrderStatus, bool]:
        try:
            raw = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError(f"Malformed tracking payload: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValidationError("Invalid Payload")
        tracking_number = raw.get("tracking_number")
        new_status = raw.get("new_status")
        if not tracking_number or not new_status:
            raise ValidationError("Invalid Payload")
        target = OrderStatus.from_wire(str(new_status))
        if target in (OrderStatus.PENDING_PAYMENT, OrderStatus.PAID):
            raise ValidationError(f"Carriers cannot set status {target.value!r}")
        return (
            str(tracking_number),
            target,
            bool(raw.get("is_final_status", False)),
        )
