# shopcart/api/deps.py
from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from shopcart.data.database import get_db
from shopcart.domain.errors import InvalidOwnerError
from shopcart.domain.owner import Owner, resolve_owner
from shopcart.services.cart_service import CartService
from shopcart.services.lock_service import LockService
from shopcart.services.product_client import ProductClient


def get_product_client() -> ProductClient:
    return ProductClient()


def get_lock_service() -> LockService:
    return LockService()


def get_service(
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(
        db=db,
        product_client=product_client,
        lock_service=lock_service,
    )


def get_owner(
    user_id: int | None = Query(None, gt=0),
    x_session_id: str | None = Header(None, max_length=255),
) -> Owner:
    # uwierzytelnianie jest poza serwisem, dostajemy gotowe user_id albo sesje
    try:
        return resolve_owner(user_id, x_session_id)
    except InvalidOwnerError as e:
        raise HTTPException(status_code=400, detail=e.to_detail())
