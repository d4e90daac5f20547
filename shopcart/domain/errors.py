# shopcart/domain/errors.py
"""Typowane bledy rdzenia koszyka.

Routery tlumacza je na HTTPException, tutaj nic nie wie o HTTP.
"""


class CartError(Exception):
    code = "CART_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(CartError):
    code = "NOT_FOUND"


class ProductInactiveError(CartError):
    code = "PRODUCT_INACTIVE"

    def __init__(self, product_id: int):
        super().__init__(f"Produkt {product_id} nie jest dostepny")
        self.product_id = product_id


class InsufficientStockError(CartError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(f"Dostepnych sztuk w magazynie: {available}")
        self.product_id = product_id
        self.available = available
        self.requested = requested

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["available"] = self.available
        detail["requested"] = self.requested
        return detail


class OutOfStockError(InsufficientStockError):
    code = "OUT_OF_STOCK"

    def __init__(self, product_id: int, requested: int):
        super().__init__(product_id, available=0, requested=requested)
        self.message = "Produkt jest niedostepny w magazynie"
        self.args = (self.message,)


class InvalidQuantityError(CartError):
    code = "INVALID_QUANTITY"

    def __init__(self, message: str, quantity: int):
        super().__init__(message)
        self.quantity = quantity


class InvalidOwnerError(CartError):
    code = "INVALID_OWNER"


class ConflictDuringMergeError(CartError):
    code = "MERGE_CONFLICT"


class CartLockedError(CartError):
    code = "CART_LOCKED"

    def __init__(self, lock_key: str):
        super().__init__("Koszyk jest wlasnie modyfikowany przez inne zadanie")
        self.lock_key = lock_key
