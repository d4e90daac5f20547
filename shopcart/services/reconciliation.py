# shopcart/services/reconciliation.py
from decimal import Decimal
from typing import Any, Dict, List

from shopcart.data.models.cart_line import CartLineModel
from shopcart.domain.errors import (
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
    OutOfStockError,
    ProductInactiveError,
)
from shopcart.domain.owner import Owner
from shopcart.domain.product import ProductSnapshot
from shopcart.repos.cart_repo import CartRepo
from shopcart.utils.settings import MAX_LINE_QUANTITY, PRICE_TOLERANCE
from shopcart.utils.logging import get_logger

logger = get_logger(__name__)

UNAVAILABLE = "unavailable"
OUT_OF_STOCK = "out_of_stock"
INSUFFICIENT_STOCK = "insufficient_stock"
PRICE_CHANGED = "price_changed"


class CartReconciler:
    """
    Pilnuje zgodnosci pozycji koszyka ze stanem katalogu (cena, stan, aktywnosc).

    Nie trzyma wlasnych kopii pozycji - czyta i od razu zapisuje przez repo.
    Metody nie commituja, wolajacy owija je w run_in_transaction.
    """

    def __init__(self, repo: CartRepo, catalog):
        self.repo = repo
        self.catalog = catalog

    def _require_product(self, product_id: int) -> ProductSnapshot:
        product = self.catalog.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Produkt {product_id} nie istnieje")
        return product

    @staticmethod
    def _check_stock(product: ProductSnapshot, quantity: int) -> None:
        if product.stock == 0:
            raise OutOfStockError(product.id, requested=quantity)
        if product.stock < quantity:
            raise InsufficientStockError(product.id, available=product.stock, requested=quantity)

    @staticmethod
    def _check_limit(quantity: int) -> None:
        if quantity > MAX_LINE_QUANTITY:
            raise InvalidQuantityError(
                f"Maksymalna ilosc jednej pozycji to {MAX_LINE_QUANTITY}", quantity
            )

    # dodanie do koszyka
    def add_line(self, owner: Owner, product_id: int, quantity: int) -> CartLineModel:
        if quantity < 1:
            raise InvalidQuantityError("Ilosc musi byc wieksza niz 0", quantity)
        self._check_limit(quantity)

        product = self._require_product(product_id)
        if not product.is_active:
            raise ProductInactiveError(product_id)
        self._check_stock(product, quantity)

        existing = self.repo.find_one(owner, product_id)
        if existing:
            new_quantity = existing.quantity + quantity
            self._check_limit(new_quantity)
            self._check_stock(product, new_quantity)
            logger.info(
                f"Produkt {product_id} juz jest w koszyku, zwiekszam ilosc "
                f"z {existing.quantity} do {new_quantity}"
            )
            # cena zostaje z momentu pierwszego dodania
            return self.repo.upsert_quantity(existing, new_quantity)

        logger.info(f"Dodaje nowy produkt {product_id} po cenie {product.display_price}")
        return self.repo.create(owner, product_id, quantity, product.display_price)

    # zmiana ilosci
    def set_quantity(self, owner: Owner, line: CartLineModel, quantity: int) -> CartLineModel | None:
        if quantity < 0:
            raise InvalidQuantityError("Ilosc nie moze byc ujemna", quantity)

        if quantity == 0:
            logger.info(f"Ilosc 0 - usuwam pozycje {line.id}")
            self.repo.delete(line)
            return None

        self._check_limit(quantity)
        product = self._require_product(line.product_id)
        if not product.is_active and quantity > line.quantity:
            raise ProductInactiveError(line.product_id)
        if quantity > product.stock:
            raise InsufficientStockError(line.product_id, available=product.stock, requested=quantity)

        return self.repo.upsert_quantity(line, quantity)

    # walidacja przed checkoutem
    def validate(self, owner: Owner) -> Dict[str, Any]:
        report: Dict[str, Any] = {"valid": True, "issues": [], "repaired": []}

        for line in self.repo.find_by_owner(owner, for_update=True):
            product = self.catalog.get_product(line.product_id)
            codes: List[str] = []
            messages: List[str] = []

            if product is None or not product.is_active:
                codes.append(UNAVAILABLE)
                messages.append("Produkt nie jest juz dostepny")
            elif product.stock < line.quantity:
                if product.stock == 0:
                    codes.append(OUT_OF_STOCK)
                    messages.append("Produkt jest niedostepny w magazynie")
                else:
                    codes.append(INSUFFICIENT_STOCK)
                    messages.append(f"Dostepnych sztuk: {product.stock}")
                    report["repaired"].append(
                        self._repair(line, "quantity", line.quantity, product.stock)
                    )
                    self.repo.upsert_quantity(line, product.stock)

            if product is not None and self._price_drifted(line.unit_price, product.display_price):
                codes.append(PRICE_CHANGED)
                messages.append(
                    f"Cena zmienila sie z {line.unit_price} na {product.display_price}"
                )
                report["repaired"].append(
                    self._repair(line, "unit_price", line.unit_price, product.display_price)
                )
                self.repo.upsert_price(line, product.display_price)

            if codes:
                report["valid"] = False
                report["issues"].append(
                    {
                        "line_id": line.id,
                        "product_id": line.product_id,
                        "codes": codes,
                        "messages": messages,
                    }
                )

        logger.info(
            f"Walidacja koszyka: valid={report['valid']}, "
            f"problemy={len(report['issues'])}, naprawy={len(report['repaired'])}"
        )
        return report

    # jawna synchronizacja cen dla produktu
    def sync_prices(self, product_id: int) -> int:
        product = self.catalog.get_product(product_id)
        if product is None:
            return 0

        updated = 0
        for line in self.repo.find_by_product(product_id):
            if self._price_drifted(line.unit_price, product.display_price):
                self.repo.upsert_price(line, product.display_price)
                updated += 1
        return updated

    @staticmethod
    def _price_drifted(stored: Decimal, current: Decimal) -> bool:
        return abs(Decimal(stored) - Decimal(current)) > PRICE_TOLERANCE

    @staticmethod
    def _repair(line: CartLineModel, field: str, old, new) -> Dict[str, Any]:
        return {"line_id": line.id, "field": field, "old_value": old, "new_value": new}
