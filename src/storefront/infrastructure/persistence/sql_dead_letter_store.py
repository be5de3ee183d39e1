"""SQLAlchemy-backed implementation of DeadLetterStore.

Every call runs in its own short transaction, independent of whatever
unit of work failed, so a dead letter survives that unit's rollback.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.repository.dead_letter_store import DeadLetter, DeadLetterStore
from storefront.infrastructure.persistence.tables import DeadLetterRow


class SqlDeadLetterStore(DeadLetterStore):

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add(self, letter: DeadLetter) -> None:
        with self._session_factory.begin() as session:
            row = DeadLetterRow(
                delivery_id=letter.delivery_id,
                event_kind=letter.event_kind,
                body=letter.body,
                reason=letter.reason,
                attempts=letter.attempts,
                resolved=letter.resolved,
            )
            session.add(row)
            session.flush()
            letter.id = row.id
            letter.created_at = row.created_at

    def list_unresolved(self, limit: int = 100) -> list[DeadLetter]:
        stmt = (
            select(DeadLetterRow)
            .where(DeadLetterRow.resolved.is_(False))
            .order_by(DeadLetterRow.id)
            .limit(limit)
        )
        with self._session_factory() as session:
            return [self._to_domain(row) for row in session.execute(stmt).scalars()]

    def mark_resolved(self, letter_id: int) -> None:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(DeadLetterRow)
                .where(DeadLetterRow.id == letter_id)
                .values(resolved=True)
            )
            if result.rowcount != 1:
                raise EntityNotFoundError(f"Dead letter #{letter_id} not found")

    @staticmethod
    def _to_domain(row: DeadLetterRow) -> DeadLetter:
        return DeadLetter(
            id=row.id,
            delivery_id=row.delivery_id,
            event_kind=row.event_kind,
            body=row.body,
            reason=row.reason,
            attempts=row.attempts,
            resolved=row.resolved,
            created_at=row.created_at,
        )
