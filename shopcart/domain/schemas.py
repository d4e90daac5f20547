# shopcart/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime

from shopcart.utils.settings import MAX_LINE_QUANTITY


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(1, ge=1, le=MAX_LINE_QUANTITY, description="Ilość produktu (1..999)")


class ItemUpdateIn(BaseModel):
    """Schema dla zmiany ilości; 0 usuwa pozycję."""

    quantity: int = Field(..., ge=0, le=MAX_LINE_QUANTITY, description="Nowa ilość (0 usuwa)")


class MergeIn(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=255, description="ID sesji gościa")


class OwnerOut(BaseModel):
    type: str
    id: str


class CartLineOut(BaseModel):
    """Schema dla pozycji koszyka (response)."""

    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CartSummaryOut(BaseModel):
    item_count: int
    line_count: int
    subtotal: Decimal
    total: Decimal


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    owner: OwnerOut
    items: List[CartLineOut]
    summary: CartSummaryOut


class ClampOut(BaseModel):
    product_id: int
    requested: int
    kept: int


class MergeResultOut(BaseModel):
    merged: List[int]
    reassigned: List[int]
    clamped: List[ClampOut]
    removed: int


class MergeOut(CartOut):
    """Koszyk uzytkownika po merge razem z podsumowaniem laczenia."""

    merge: MergeResultOut


class CartCountOut(BaseModel):
    count: int


class ClearCartOut(BaseModel):
    removed: int


class LineIssueOut(BaseModel):
    line_id: int
    product_id: int
    codes: List[str]
    messages: List[str]


class LineRepairOut(BaseModel):
    line_id: int
    field: str
    old_value: Decimal | int
    new_value: Decimal | int


class ValidationReportOut(BaseModel):
    """Raport walidacji koszyka przed checkoutem."""

    valid: bool
    issues: List[LineIssueOut]
    repaired: List[LineRepairOut]
