# shopcart/domain/product.py
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ProductSnapshot:
    """Widok produktu z katalogu (tylko odczyt)."""

    id: int
    is_active: bool
    price: Decimal
    sale_price: Decimal | None
    stock: int

    @property
    def display_price(self) -> Decimal:
        # brak lub zerowa cena promocyjna = brak promocji
        if self.sale_price and self.sale_price < self.price:
            return self.sale_price
        return self.price

    @classmethod
    def from_payload(cls, data: dict) -> "ProductSnapshot":
        sale_price = data.get("sale_price")
        return cls(
            id=int(data["id"]),
            is_active=bool(data.get("is_active", True)),
            price=Decimal(str(data["price"])),
            sale_price=Decimal(str(sale_price)) if sale_price is not None else None,
            stock=max(int(data.get("stock", 0)), 0),
        )
