"""SQLAlchemy-backed implementation of PaymentRepository."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.domain.model.payment import Payment, PaymentStatus
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.infrastructure.persistence.tables import PaymentRow


class SqlPaymentRepository(PaymentRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, payment: Payment) -> None:
        row = PaymentRow(
            order_id=payment.order_id,
            provider=payment.provider,
            provider_order_ref=payment.provider_order_ref,
            provider_payment_ref=payment.provider_payment_ref,
            amount=payment.amount.quantized(),
            currency=payment.amount.currency,
            status=payment.status.value,
        )
        self._session.add(row)
        self._session.flush()
        payment.id = row.payment_id

    def get_by_provider_order_ref(self, provider_order_ref: str) -> Payment | None:
        stmt = (
            select(PaymentRow)
            .where(PaymentRow.provider_order_ref == provider_order_ref)
            .order_by(PaymentRow.payment_id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        return None if row is None else self._to_domain(row)

    def latest_for_order(self, order_id: int) -> Payment | None:
        stmt = (
            select(PaymentRow)
            .where(PaymentRow.order_id == order_id)
            .order_by(PaymentRow.payment_id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        return None if row is None else self._to_domain(row)

    def mark_success(self, payment_id: int, provider_payment_ref: str | None) -> None:
        values: dict = {"status": PaymentStatus.SUCCESS.value}
        if provider_payment_ref:
            values["provider_payment_ref"] = provider_payment_ref
        self._session.execute(
            update(PaymentRow)
            .where(PaymentRow.payment_id == payment_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    def mark_failed(self, provider_order_ref: str) -> int:
        stmt = (
            update(PaymentRow)
            .where(
                PaymentRow.provider_order_ref == provider_order_ref,
                PaymentRow.status != PaymentStatus.SUCCESS.value,
            )
            .values(status=PaymentStatus.FAILED.value)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount

    @staticmethod
    def _to_domain(row: PaymentRow) -> Payment:
        return Payment(
            id=row.payment_id,
            order_id=row.order_id,
            provider=row.provider,
            provider_order_ref=row.provider_order_ref,
            provider_payment_ref=row.provider_payment_ref,
            amount=Money(Decimal(row.amount), row.currency),
            status=PaymentStatus(row.status),
        )
