"""SQLAlchemy implementation of the relational unit of work."""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from storefront.domain.repository.unit_of_work import RelationalUnitOfWork
from storefront.infrastructure.persistence.sql_cart_repository import SqlCartRepository
from storefront.infrastructure.persistence.sql_inventory_repository import (
    SqlInventoryRepository,
)
from storefront.infrastructure.persistence.sql_order_repository import (
    SqlOrderRepository,
)
from storefront.infrastructure.persistence.sql_payment_repository import (
    SqlPaymentRepository,
)


class SqlAlchemyUnitOfWork(RelationalUnitOfWork):
    """One session, one transaction; repositories share the session."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self._session_factory()
        self.inventory = SqlInventoryRepository(self._session)
        self.orders = SqlOrderRepository(self._session)
        self.payments = SqlPaymentRepository(self._session)
        self.carts = SqlCartRepository(self._session)
        return self

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("Unit of work used outside its 'with' block")
        return self._session

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
