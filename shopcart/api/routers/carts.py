#shopcart/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Query

from shopcart.api.deps import get_owner, get_service
from shopcart.domain.errors import (
    CartError,
    CartLockedError,
    ConflictDuringMergeError,
    InsufficientStockError,
    InvalidOwnerError,
    InvalidQuantityError,
    NotFoundError,
    ProductInactiveError,
)
from shopcart.domain.owner import Owner
from shopcart.domain.schemas import (
    CartCountOut,
    CartOut,
    CartSummaryOut,
    ClearCartOut,
    ItemIn,
    ItemUpdateIn,
    MergeIn,
    MergeOut,
    ValidationReportOut,
)
from shopcart.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])

_STATUS = (
    (NotFoundError, 404),
    (ProductInactiveError, 404),
    (InsufficientStockError, 400),
    (InvalidOwnerError, 400),
    (InvalidQuantityError, 400),
    (ConflictDuringMergeError, 409),
    (CartLockedError, 409),
)


def _to_http(e: CartError) -> HTTPException:
    for exc_type, status in _STATUS:
        if isinstance(e, exc_type):
            return HTTPException(status_code=status, detail=e.to_detail())
    return HTTPException(status_code=400, detail=e.to_detail())


@router.get("", response_model=CartOut)
def get_cart(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_service)):
    return svc.get_cart(owner)


@router.get("/summary", response_model=CartSummaryOut)
def get_summary(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_service)):
    return svc.get_summary(owner)


@router.get("/count", response_model=CartCountOut)
def get_count(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_service)):
    return svc.get_count(owner)


@router.post("/items", response_model=CartOut, status_code=201)
def add_item(
    payload: ItemIn,
    owner: Owner = Depends(get_owner),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.add_item(owner, payload.product_id, payload.quantity)
    except CartError as e:
        raise _to_http(e)


@router.put("/items/{line_id}", response_model=CartOut)
def update_item(
    line_id: int,
    payload: ItemUpdateIn,
    owner: Owner = Depends(get_owner),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.update_item(owner, line_id, payload.quantity)
    except CartError as e:
        raise _to_http(e)


@router.delete("/items/{line_id}", response_model=CartOut)
def remove_item(
    line_id: int,
    owner: Owner = Depends(get_owner),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.remove_item(owner, line_id)
    except CartError as e:
        raise _to_http(e)


@router.delete("/clear", response_model=ClearCartOut)
def clear_cart(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_service)):
    try:
        return svc.clear_cart(owner)
    except CartError as e:
        raise _to_http(e)


@router.post("/validate", response_model=ValidationReportOut)
def validate_cart(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_service)):
    try:
        return svc.validate_cart(owner)
    except CartError as e:
        raise _to_http(e)


@router.post("/merge", response_model=MergeOut)
def merge_cart(
    payload: MergeIn,
    user_id: int | None = Query(None, gt=0),
    svc: CartService = Depends(get_service),
):
    if not user_id:
        raise HTTPException(status_code=401, detail="Uzytkownik musi byc zalogowany")
    try:
        return svc.merge_on_login(payload.session_id, user_id)
    except CartError as e:
        raise _to_http(e)
