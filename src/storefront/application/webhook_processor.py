"""Application service: payment provider webhooks.

Receiving and applying are separate steps. ``receive`` checks the
signature over the raw body, parses the envelope, stores the delivery in
the durable inbox and returns an acknowledgement; no order, payment or
stock is touched yet. ``process_pending`` applies the deliveries that
are due, each in its own unit of work.

Deliveries may repeat and may race the client confirm path. Both are
absorbed by the Paid transition itself: an order that is already Paid
or later is a duplicate and is dropped without touching stock.

A delivery that cannot be applied never goes back to the provider as an
error. Domain conflicts are dead-lettered at once. Anything else stays
in the inbox with its next attempt pushed back, the delay doubling each
time, and is dead-lettered after ``max_attempts``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

import structlog

from storefront.application.catalog_sync import mirror_stock_levels
from storefront.domain.exceptions import (
    DomainException,
    DuplicatePaymentError,
    FulfillmentConflictError,
    SignatureError,
    ValidationError,
)
from storefront.domain.model.order import OrderStatus
from storefront.domain.model.payment import PaymentStatus
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.dead_letter_store import DeadLetter, DeadLetterStore
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory
from storefront.domain.repository.webhook_inbox import InboxEntry, WebhookInbox
from storefront.domain.service.order_lifecycle import OrderLifecycle

logger = structlog.get_logger(__name__)

ORDER_PAID = "order.paid"
PAYMENT_FAILED = "payment.failed"


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


class WebhookSignatureVerifier:
    """Hex HMAC-SHA256 over the raw request body with a shared secret."""

    def __init__(self, secret: str, source: str = "payment") -> None:
        self._secret = secret
        self._source = source

    def sign(self, body: bytes) -> str:
        return hmac.new(self._secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    def verify(self, body: bytes, signature: str | None) -> None:
        log = logger.bind(source=self._source)
        if not self._secret:
            log.error("webhook_secret_not_configured")
            raise SignatureError("Webhook secret is not configured")
        if not signature:
            log.error("webhook_signature_missing")
            raise SignatureError("Missing webhook signature")
        if not hmac.compare_digest(self.sign(body), signature.strip().lower()):
            log.error("webhook_signature_invalid")
            raise SignatureError("Invalid webhook signature")


# ---------------------------------------------------------------------------
# Events and outcomes
# ---------------------------------------------------------------------------


@dataclass
class WebhookEvent:
    delivery_id: str
    kind: str
    payload: dict[str, Any]
    body: bytes
    attempts: int = 0
    last_error: str | None = None

    @property
    def provider_order_ref(self) -> str:
        if self.kind == ORDER_PAID:
            return self.payload["order"]["entity"]["id"]
        return self.payload["payment"]["entity"]["order_id"]

    @property
    def provider_payment_ref(self) -> str | None:
        payment = self.payload.get("payment")
        if isinstance(payment, dict) and isinstance(payment.get("entity"), dict):
            return payment["entity"].get("id")
        return None


@dataclass(frozen=True)
class WebhookAck:
    delivery_id: str
    status: str = "ok"
    queued: bool = True

    def to_wire(self) -> dict:
        return {"status": self.status, "delivery_id": self.delivery_id}


class Outcome(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    RETRY = "retry"
    DEAD_LETTERED = "dead_lettered"


@dataclass
class RetryReport:
    resolved: list[int] = field(default_factory=list)
    still_failing: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------


class WebhookProcessor:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        lifecycle: OrderLifecycle,
        catalog: CatalogStore,
        dead_letters: DeadLetterStore,
        inbox: WebhookInbox,
        verifier: WebhookSignatureVerifier,
        max_attempts: int = 3,
        retry_delay: timedelta = timedelta(seconds=30),
    ) -> None:
        self._uow_factory = uow_factory
        self._lifecycle = lifecycle
        self._catalog = catalog
        self._dead_letters = dead_letters
        self._inbox = inbox
        self._verifier = verifier
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._handlers: dict[str, Callable[[WebhookEvent], Outcome]] = {
            ORDER_PAID: self._on_order_paid,
            PAYMENT_FAILED: self._on_payment_failed,
        }

    @property
    def pending(self) -> int:
        return self._inbox.count_pending()

    @property
    def supported_events(self) -> list[str]:
        return list(self._handlers)

    # --- Ingestion ------------------------------------------------------------

    def receive(self, body: bytes, signature: str | None) -> WebhookAck:
        """Verify, parse and store one delivery; apply nothing."""
        self._verifier.verify(body, signature)
        event = self._parse(body, delivery_id=uuid.uuid4().hex)
        log = logger.bind(delivery_id=event.delivery_id, event_kind=event.kind)

        if event.kind not in self._handlers:
            log.warning("webhook_event_ignored")
            return WebhookAck(delivery_id=event.delivery_id, queued=False)

        self._inbox.add(
            InboxEntry(
                id=None,
                delivery_id=event.delivery_id,
                event_kind=event.kind,
                body=body,
            )
        )
        log.info("webhook_received", provider_order_ref=event.provider_order_ref)
        return WebhookAck(delivery_id=event.delivery_id)

    def process_pending(
        self, now: datetime | None = None, limit: int = 100
    ) -> list[tuple[WebhookEvent, Outcome]]:
        """Apply the stored deliveries that are due at *now*.

        A delivery that hits a transient failure stays in the inbox and
        is reported as RETRY; it becomes due again after
        ``retry_delay * 2 ** (attempts - 1)``.
        """
        now = now or datetime.now(timezone.utc)
        results: list[tuple[WebhookEvent, Outcome]] = []
        for entry in self._inbox.list_due(now, limit):
            event, outcome = self._process_entry(entry)
            if outcome is Outcome.RETRY:
                next_attempt_at = now + self._retry_delay * 2 ** (event.attempts - 1)
                self._inbox.defer(
                    entry.id,  # type: ignore[arg-type]
                    event.attempts,
                    next_attempt_at,
                    event.last_error or "",
                )
            else:
                self._inbox.mark_done(entry.id, outcome.value, event.attempts)  # type: ignore[arg-type]
            results.append((event, outcome))
        return results

    def retry_dead_letters(self, limit: int = 100) -> RetryReport:
        """Re-apply unresolved dead letters; resolved ones are flagged."""
        report = RetryReport()
        for letter in self._dead_letters.list_unresolved(limit):
            log = logger.bind(dead_letter_id=letter.id, delivery_id=letter.delivery_id)
            try:
                event = self._parse(letter.body, delivery_id=letter.delivery_id)
                event.attempts = letter.attempts
                outcome = self._apply(event)
            except Exception as exc:
                log.error("dead_letter_retry_failed", error=str(exc), error_type=type(exc).__name__)
                report.still_failing.append(letter.id)  # type: ignore[arg-type]
                continue
            self._dead_letters.mark_resolved(letter.id)  # type: ignore[arg-type]
            log.info("dead_letter_resolved", outcome=outcome.value)
            report.resolved.append(letter.id)  # type: ignore[arg-type]
        return report

    # --- Processing -----------------------------------------------------------

    def _process_entry(self, entry: InboxEntry) -> tuple[WebhookEvent, Outcome]:
        try:
            event = self._parse(entry.body, delivery_id=entry.delivery_id)
        except ValidationError as exc:
            event = WebhookEvent(
                delivery_id=entry.delivery_id,
                kind=entry.event_kind,
                payload={},
                body=entry.body,
                attempts=entry.attempts + 1,
            )
            return event, self._dead_letter(event, str(exc))
        event.attempts = entry.attempts
        return event, self._process(event)

    def _process(self, event: WebhookEvent) -> Outcome:
        event.attempts += 1
        log = logger.bind(
            delivery_id=event.delivery_id, event_kind=event.kind, attempt=event.attempts
        )
        try:
            return self._apply(event)
        except FulfillmentConflictError as exc:
            log.critical(
                "paid_order_fulfillment_conflict",
                provider_order_ref=event.provider_order_ref,
                error=str(exc),
            )
            return self._dead_letter(event, str(exc))
        except DomainException as exc:
            return self._dead_letter(event, str(exc))
        except Exception as exc:
            if event.attempts >= self._max_attempts:
                return self._dead_letter(event, f"{type(exc).__name__}: {exc}")
            event.last_error = f"{type(exc).__name__}: {exc}"
            log.warning("webhook_processing_retry", error=str(exc), error_type=type(exc).__name__)
            return Outcome.RETRY

    def _apply(self, event: WebhookEvent) -> Outcome:
        return self._handlers[event.kind](event)

    def _dead_letter(self, event: WebhookEvent, reason: str) -> Outcome:
        self._dead_letters.add(
            DeadLetter(
                id=None,
                delivery_id=event.delivery_id,
                event_kind=event.kind,
                body=event.body,
                reason=reason,
                attempts=event.attempts,
            )
        )
        logger.error(
            "webhook_dead_lettered",
            delivery_id=event.delivery_id,
            event_kind=event.kind,
            attempts=event.attempts,
            reason=reason,
        )
        return Outcome.DEAD_LETTERED

    # --- Event handlers -------------------------------------------------------

    def _on_order_paid(self, event: WebhookEvent) -> Outcome:
        ref = event.provider_order_ref
        log = logger.bind(delivery_id=event.delivery_id, provider_order_ref=ref)

        with self._uow_factory() as uow:
            payment = uow.payments.get_by_provider_order_ref(ref)
            if payment is None:
                log.warning("webhook_unknown_payment")
                return Outcome.IGNORED
            log = log.bind(order_id=payment.order_id)

            order = uow.orders.get_by_id(payment.order_id)
            if order is not None and order.status.is_paid_or_later:
                log.info("webhook_duplicate_dropped", status=order.status.value)
                return Outcome.DUPLICATE

            try:
                result = self._lifecycle.transition(
                    uow,
                    payment.order_id,
                    OrderStatus.PAID,
                    provider_order_ref=ref,
                    provider_payment_ref=event.provider_payment_ref,
                )
            except DuplicatePaymentError:
                log.info("webhook_duplicate_dropped")
                return Outcome.DUPLICATE
            uow.commit()

        log.info("payment_applied", stock_levels=result.stock_levels)
        mirror_stock_levels(self._catalog, result.stock_levels)
        return Outcome.APPLIED

    def _on_payment_failed(self, event: WebhookEvent) -> Outcome:
        ref = event.provider_order_ref
        log = logger.bind(delivery_id=event.delivery_id, provider_order_ref=ref)

        with self._uow_factory() as uow:
            payment = uow.payments.get_by_provider_order_ref(ref)
            if payment is None:
                log.warning("webhook_unknown_payment")
                return Outcome.IGNORED
            if payment.status is PaymentStatus.SUCCESS:
                log.info("payment_failed_after_success_ignored", order_id=payment.order_id)
                return Outcome.DUPLICATE
            uow.payments.mark_failed(ref)
            uow.commit()

        log.info("payment_marked_failed", order_id=payment.order_id)
        return Outcome.APPLIED

    # --- Parsing --------------------------------------------------------------

    def _parse(self, body: bytes, delivery_id: str) -> WebhookEvent:
        try:
            envelope = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError(f"Malformed webhook body: {exc}") from exc
        if not isinstance(envelope, dict) or not isinstance(envelope.get("event"), str):
            raise ValidationError("Webhook body must be an object with an 'event' field")

        payload = envelope.get("payload")
        event = WebhookEvent(
            delivery_id=delivery_id,
            kind=envelope["event"],
            payload=payload if isinstance(payload, dict) else {},
            body=body,
        )
        if event.kind in self._handlers:
            try:
                ref = event.provider_order_ref
            except (KeyError, TypeError):
                raise ValidationError(
                    f"Webhook '{event.kind}' is missing its order reference"
                ) from None
            if not isinstance(ref, str) or not ref:
                raise ValidationError(f"Webhook '{event.kind}' has an empty order reference")
        return event
