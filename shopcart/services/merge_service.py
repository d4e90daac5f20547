# shopcart/services/merge_service.py
from typing import Any, Dict

from shopcart.domain.owner import SessionOwner, UserOwner
from shopcart.repos.cart_repo import CartRepo
from shopcart.utils.settings import MAX_LINE_QUANTITY
from shopcart.utils.logging import get_logger

logger = get_logger(__name__)


class CartMerger:
    """
    Laczenie koszyka goscia z koszykiem uzytkownika przy logowaniu.

    Dla kazdej pozycji sesji:
    - user ma juz ten produkt -> sumujemy ilosci i przycinamy do stanu
      magazynu oraz limitu pozycji (nadmiar przepada po cichu),
      pozycja sesji jest usuwana
    - produktu nie ma w katalogu albo jest nieaktywny -> pozycja usera
      zostaje bez zmian, pozycja sesji jest usuwana
    - user nie ma produktu -> pozycja zmienia wlasciciela w miejscu,
      cena i created_at zostaja bez zmian
    Na koniec usuwamy ewentualne resztki koszyka sesji.

    Nie commituje - wolajacy odpala merge w jednej transakcji.
    """

    def __init__(self, repo: CartRepo, catalog):
        self.repo = repo
        self.catalog = catalog

    def merge(self, session: SessionOwner, user: UserOwner) -> Dict[str, Any]:
        result: Dict[str, Any] = {"merged": [], "reassigned": [], "clamped": [], "removed": 0}

        session_lines = self.repo.find_by_owner(session, for_update=True)
        # zablokuj tez pozycje usera zanim zaczniemy je czytac pojedynczo
        self.repo.find_by_owner(user, for_update=True)

        for s_line in session_lines:
            u_line = self.repo.find_one(user, s_line.product_id)

            if u_line is None:
                self.repo.reassign(s_line, user)
                result["reassigned"].append(s_line.id)
                continue

            wanted = u_line.quantity + s_line.quantity
            product = self.catalog.get_product(s_line.product_id)
            if product is None or not product.is_active:
                logger.info(
                    f"Merge: produkt {s_line.product_id} niedostepny, "
                    f"pozycja usera zostaje z iloscia {u_line.quantity}"
                )
                new_quantity = u_line.quantity
            else:
                new_quantity = min(wanted, product.stock, MAX_LINE_QUANTITY)

            if new_quantity < wanted:
                result["clamped"].append(
                    {
                        "product_id": s_line.product_id,
                        "requested": wanted,
                        "kept": new_quantity,
                    }
                )
                logger.info(
                    f"Merge: produkt {s_line.product_id} przyciety z {wanted} do {new_quantity}"
                )

            self.repo.delete(s_line)
            # stan 0 -> pozycja usera znika razem z pozycja sesji
            if self.repo.upsert_quantity(u_line, new_quantity) is not None:
                result["merged"].append(u_line.id)

        # nic z sesji nie moze zostac
        result["removed"] = self.repo.delete_all_for_owner(session)

        logger.info(
            f"Merge sesji {session.id} -> user {user.id}: "
            f"polaczone={len(result['merged'])}, przeniesione={len(result['reassigned'])}, "
            f"przyciete={len(result['clamped'])}"
        )
        return result
