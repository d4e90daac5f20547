# shopcart/services/cart_service.py
from contextlib import ExitStack
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopcart.data.models.cart_line import CartLineModel
from shopcart.domain.errors import ConflictDuringMergeError, NotFoundError
from shopcart.domain.owner import Owner, SessionOwner, UserOwner, describe
from shopcart.repos.cart_repo import CartRepo
from shopcart.services.lock_service import LockService
from shopcart.services.merge_service import CartMerger
from shopcart.services.product_client import ProductClient
from shopcart.services.reconciliation import CartReconciler
from shopcart.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Prosta implementacja cqrs dla domeny cart
    commands (add, update, remove, clear, merge, validate) modyfikuja stan
    w sekcji krytycznej wlasciciela i w jednej transakcji
    query (get, summary, count) tylko odczyt
    """

    def __init__(
        self,
        db: Session,
        product_client: ProductClient,
        lock_service: LockService,
    ):
        self.repo = CartRepo(db)
        self.product_client = product_client
        self.lock_service = lock_service
        self.reconciler = CartReconciler(self.repo, product_client)
        self.merger = CartMerger(self.repo, product_client)

    #query - odczyt
    def get_cart(self, owner: Owner) -> Dict[str, Any]:
        lines = self.repo.find_by_owner(owner)
        return {
            "owner": describe(owner),
            "items": [self._line_dict(line) for line in lines],
            "summary": self._summarize(lines),
        }

    def get_summary(self, owner: Owner) -> Dict[str, Any]:
        # zawsze liczone od nowa z aktualnych pozycji
        return self._summarize(self.repo.find_by_owner(owner))

    def get_count(self, owner: Owner) -> Dict[str, Any]:
        return {"count": self.repo.count_for_owner(owner)}

    #commands
    def add_item(self, owner: Owner, product_id: int, quantity: int) -> Dict[str, Any]:
        logger.info(f"Dodawanie produktu {product_id} x{quantity} do koszyka {describe(owner)}")

        with self.lock_service.owner_lock(owner.lock_key):
            try:
                self.repo.run_in_transaction(
                    lambda: self.reconciler.add_line(owner, product_id, quantity)
                )
            except Exception as e:
                logger.error(f"Blad podczas dodawania produktu {product_id}: {e}")
                raise

        return self.get_cart(owner)

    def update_item(self, owner: Owner, line_id: int, quantity: int) -> Dict[str, Any]:
        logger.info(f"Zmiana ilosci pozycji {line_id} na {quantity}")

        def _update():
            line = self._require_line(owner, line_id)
            return self.reconciler.set_quantity(owner, line, quantity)

        with self.lock_service.owner_lock(owner.lock_key):
            self.repo.run_in_transaction(_update)

        return self.get_cart(owner)

    def remove_item(self, owner: Owner, line_id: int) -> Dict[str, Any]:
        logger.info(f"Usuwanie pozycji {line_id} z koszyka {describe(owner)}")

        def _remove():
            line = self._require_line(owner, line_id)
            return self.repo.delete(line)

        with self.lock_service.owner_lock(owner.lock_key):
            self.repo.run_in_transaction(_remove)

        return self.get_cart(owner)

    def clear_cart(self, owner: Owner) -> Dict[str, Any]:
        with self.lock_service.owner_lock(owner.lock_key):
            removed = self.repo.run_in_transaction(
                lambda: self.repo.delete_all_for_owner(owner)
            )

        logger.info(f"Wyczyszczono koszyk {describe(owner)}, usunieto {removed} pozycji")
        return {"removed": removed}

    def validate_cart(self, owner: Owner) -> Dict[str, Any]:
        with self.lock_service.owner_lock(owner.lock_key):
            return self.repo.run_in_transaction(lambda: self.reconciler.validate(owner))

    def merge_on_login(self, session_id: str, user_id: int) -> Dict[str, Any]:
        session = SessionOwner(str(session_id))
        user = UserOwner(int(user_id))
        logger.info(f"Merge koszyka sesji {session.id} do uzytkownika {user.id}")

        # kolejnosc lockow zawsze: sesja, potem user
        with ExitStack() as locks:
            locks.enter_context(self.lock_service.owner_lock(session.lock_key))
            locks.enter_context(self.lock_service.owner_lock(user.lock_key))
            try:
                result = self.repo.run_in_transaction(lambda: self.merger.merge(session, user))
            except SQLAlchemyError as e:
                logger.error(f"Merge sesji {session.id} nieudany po ponowieniach: {e}")
                raise ConflictDuringMergeError(
                    "Nie udalo sie polaczyc koszykow, sprobuj ponownie"
                ) from e

        cart = self.get_cart(user)
        cart["merge"] = result
        return cart

    # helpers
    def _require_line(self, owner: Owner, line_id: int) -> CartLineModel:
        line = self.repo.find_by_id(owner, line_id)
        if line is None:
            raise NotFoundError("Pozycja koszyka nie istnieje")
        return line

    @staticmethod
    def _line_dict(line: CartLineModel) -> Dict[str, Any]:
        return {
            "id": line.id,
            "product_id": line.product_id,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "line_total": line.line_total,
            "created_at": line.created_at,
            "updated_at": line.updated_at,
        }

    @staticmethod
    def _summarize(lines: List[CartLineModel]) -> Dict[str, Any]:
        subtotal = sum((line.unit_price * line.quantity for line in lines), Decimal("0.00"))
        return {
            "item_count": sum(line.quantity for line in lines),
            "line_count": len(lines),
            "subtotal": subtotal,
            # podatki i wysylka poza zakresem
            "total": subtotal,
        }
