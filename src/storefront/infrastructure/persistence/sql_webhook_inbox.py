"""SQLAlchemy-backed implementation of WebhookInbox.

Like the dead-letter store, every call runs in its own short transaction.
Times are stored in UTC; SQLite drops the offset, so it is put back on
read.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.repository.webhook_inbox import InboxEntry, WebhookInbox
from storefront.infrastructure.persistence.tables import WebhookInboxRow


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlWebhookInbox(WebhookInbox):

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add(self, entry: InboxEntry) -> None:
        with self._session_factory.begin() as session:
            row = WebhookInboxRow(
                delivery_id=entry.delivery_id,
                event_kind=entry.event_kind,
                body=entry.body,
                attempts=entry.attempts,
                next_attempt_at=_utc(entry.next_attempt_at or datetime.now(timezone.utc)),
            )
            session.add(row)
            session.flush()
            entry.id = row.id
            entry.next_attempt_at = _utc(row.next_attempt_at)
            entry.received_at = _utc(row.received_at)

    def list_due(self, now: datetime, limit: int = 100) -> list[InboxEntry]:
        stmt = (
            select(WebhookInboxRow)
            .where(
                WebhookInboxRow.outcome.is_(None),
                WebhookInboxRow.next_attempt_at <= _utc(now),
            )
            .order_by(WebhookInboxRow.id)
            .limit(limit)
        )
        with self._session_factory() as session:
            return [self._to_domain(row) for row in session.execute(stmt).scalars()]

    def count_pending(self) -> int:
        stmt = select(func.count()).select_from(WebhookInboxRow).where(
            WebhookInboxRow.outcome.is_(None)
        )
        with self._session_factory() as session:
            return session.execute(stmt).scalar_one()

    def mark_done(self, entry_id: int, outcome: str, attempts: int) -> None:
        self._update(entry_id, outcome=outcome, attempts=attempts)

    def defer(
        self, entry_id: int, attempts: int, next_attempt_at: datetime, error: str
    ) -> None:
        self._update(
            entry_id,
            attempts=attempts,
            next_attempt_at=_utc(next_attempt_at),
            last_error=error,
        )

    def _update(self, entry_id: int, **values) -> None:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(WebhookInboxRow).where(WebhookInboxRow.id == entry_id).values(**values)
            )
            if result.rowcount != 1:
                raise EntityNotFoundError(f"Inbox entry #{entry_id} not found")

    @staticmethod
    def _to_domain(row: WebhookInboxRow) -> InboxEntry:
        return InboxEntry(
            id=row.id,
            delivery_id=row.delivery_id,
            event_kind=row.event_kind,
            body=row.body,
            attempts=row.attempts,
            next_attempt_at=_utc(row.next_attempt_at),
            last_error=row.last_error,
            outcome=row.outcome,
            received_at=_utc(row.received_at),
        )
