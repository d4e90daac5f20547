# shopcart/repos/cart_repo.py
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, TypeVar

from sqlalchemy import select, delete, func
from sqlalchemy.orm import Session

from shopcart.data.models.cart_line import CartLineModel
from shopcart.domain.owner import Owner, UserOwner
from shopcart.utils.retry import db_retry

T = TypeVar("T")


def _owner_filter(owner: Owner):
    if isinstance(owner, UserOwner):
        return CartLineModel.user_id == owner.id
    return CartLineModel.session_id == owner.id


class CartRepo:
    """
    Jedyne zrodlo prawdy o pozycjach koszyka.
    Repo nie commituje samo - granica transakcji to run_in_transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    # transakcja
    def run_in_transaction(self, fn: Callable[[], T]) -> T:
        @db_retry()
        def _attempt() -> T:
            try:
                result = fn()
                self.db.commit()
                return result
            except Exception:
                self.db.rollback()
                raise

        return _attempt()

    # odczyt
    def find_by_owner(self, owner: Owner, for_update: bool = False) -> List[CartLineModel]:
        stmt = (
            select(CartLineModel)
            .where(_owner_filter(owner))
            .order_by(CartLineModel.created_at, CartLineModel.id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return list(self.db.execute(stmt).scalars().all())

    def find_one(self, owner: Owner, product_id: int) -> CartLineModel | None:
        return self.db.execute(
            select(CartLineModel).where(
                _owner_filter(owner),
                CartLineModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def find_by_id(self, owner: Owner, line_id: int) -> CartLineModel | None:
        # pozycja innego wlasciciela jest traktowana jak nieistniejaca
        return self.db.execute(
            select(CartLineModel).where(
                _owner_filter(owner),
                CartLineModel.id == line_id,
            )
        ).scalar_one_or_none()

    def find_by_product(self, product_id: int) -> List[CartLineModel]:
        return list(
            self.db.execute(
                select(CartLineModel).where(CartLineModel.product_id == product_id)
            ).scalars().all()
        )

    def product_ids_in_carts(self) -> List[int]:
        return list(
            self.db.execute(
                select(CartLineModel.product_id).distinct().order_by(CartLineModel.product_id)
            ).scalars().all()
        )

    def count_for_owner(self, owner: Owner) -> int:
        return self.db.execute(
            select(func.count(CartLineModel.id)).where(_owner_filter(owner))
        ).scalar_one()

    # zapis
    def create(self, owner: Owner, product_id: int, quantity: int, unit_price: Decimal) -> CartLineModel:
        line = CartLineModel(
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            **owner.columns(),
        )
        self.db.add(line)
        self.db.flush()
        return line

    def upsert_quantity(self, line: CartLineModel, quantity: int) -> CartLineModel | None:
        # ilosc 0 nie zostaje w bazie - pozycja jest usuwana
        if quantity <= 0:
            self.delete(line)
            return None
        line.quantity = quantity
        self.db.flush()
        return line

    def upsert_price(self, line: CartLineModel, price: Decimal) -> CartLineModel:
        line.unit_price = price
        self.db.flush()
        return line

    def reassign(self, line: CartLineModel, owner: Owner) -> CartLineModel:
        # zmiana wlasciciela w miejscu, cena i created_at zostaja
        for column, value in owner.columns().items():
            setattr(line, column, value)
        self.db.flush()
        return line

    def delete(self, line: CartLineModel) -> int:
        # idempotentne - usuniecie nieistniejacej pozycji to 0 wierszy
        res = self.db.execute(
            delete(CartLineModel)
            .where(CartLineModel.id == line.id)
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount

    def delete_all_for_owner(self, owner: Owner) -> int:
        res = self.db.execute(
            delete(CartLineModel)
            .where(_owner_filter(owner))
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount

    def delete_stale_session_lines(self, cutoff: datetime) -> int:
        res = self.db.execute(
            delete(CartLineModel)
            .where(
                CartLineModel.session_id.is_not(None),
                CartLineModel.updated_at < cutoff,
            )
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount
