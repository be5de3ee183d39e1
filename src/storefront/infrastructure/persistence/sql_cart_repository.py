"""SQLAlchemy-backed implementation of CartRepository.

Carts and cart lines are created with update-then-insert: the common case
is a plain UPDATE, and the INSERT runs inside a SAVEPOINT so that losing
a race on the unique constraint only rolls back the savepoint, after
which the winner's row is updated instead.
"""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.domain.exceptions import ConflictError
from storefront.domain.model.cart import Cart, CartItem
from storefront.domain.repository.cart_repository import CartRepository
from storefront.infrastructure.persistence.tables import CartItemRow, CartRow


class SqlCartRepository(CartRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- CartRepository interface ---------------------------------------------

    def get_by_user(self, user_id: str) -> Cart | None:
        cart_row = self._find_cart(user_id)
        if cart_row is None:
            return None
        stmt = (
            select(CartItemRow)
            .where(CartItemRow.cart_id == cart_row.cart_id)
            .order_by(CartItemRow.cart_item_id)
            .execution_options(populate_existing=True)
        )
        items = [
            CartItem(
                id=row.cart_item_id,
                cart_id=row.cart_id,
                product_id=row.product_id,
                quantity=row.quantity,
            )
            for row in self._session.execute(stmt).scalars()
        ]
        return Cart(id=cart_row.cart_id, user_id=cart_row.user_id, items=items)

    def get_or_create(self, user_id: str) -> Cart:
        insert_error: IntegrityError | None = None
        if self._find_cart(user_id) is None:
            try:
                with self._session.begin_nested():
                    self._session.add(CartRow(user_id=user_id))
            except IntegrityError as exc:
                # A concurrent request may have created the cart first; use theirs.
                insert_error = exc
        cart = self.get_by_user(user_id)
        if cart is None:
            raise ConflictError(f"Could not create a cart for user {user_id}") from insert_error
        return cart

    def add_quantity(self, cart_id: int, product_id: str, quantity: int) -> None:
        merge = (
            update(CartItemRow)
            .where(CartItemRow.cart_id == cart_id, CartItemRow.product_id == product_id)
            .values(quantity=CartItemRow.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if self._session.execute(merge).rowcount:
            return
        try:
            with self._session.begin_nested():
                self._session.add(
                    CartItemRow(cart_id=cart_id, product_id=product_id, quantity=quantity)
                )
        except IntegrityError:
            self._session.execute(merge)

    def set_quantity(self, cart_item_id: int, quantity: int) -> None:
        self._session.execute(
            update(CartItemRow)
            .where(CartItemRow.cart_item_id == cart_item_id)
            .values(quantity=quantity)
            .execution_options(synchronize_session=False)
        )

    def remove_item(self, cart_item_id: int) -> bool:
        stmt = (
            delete(CartItemRow)
            .where(CartItemRow.cart_item_id == cart_item_id)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount > 0

    def clear(self, user_id: str) -> int:
        cart_ids = select(CartRow.cart_id).where(CartRow.user_id == user_id)
        stmt = (
            delete(CartItemRow)
            .where(CartItemRow.cart_id.in_(cart_ids))
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount

    # --- Internal helpers -----------------------------------------------------

    def _find_cart(self, user_id: str) -> CartRow | None:
        stmt = select(CartRow).where(CartRow.user_id == user_id)
        return self._session.execute(stmt).scalar_one_or_none()
