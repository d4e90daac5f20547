# shopcart/data/models/cart_line.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric, CheckConstraint, UniqueConstraint, Index

from shopcart.data.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class CartLineModel(Base):
    __tablename__ = "cart_lines"

    id = Column(Integer, primary_key=True)

    # dokladnie jedno z dwoch pol jest ustawione
    user_id = Column(Integer, nullable=True, index=True)
    session_id = Column(String(255), nullable=True, index=True)

    product_id = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND session_id IS NULL) "
            "OR (user_id IS NULL AND session_id IS NOT NULL)",
            name="ck_cart_line_single_owner",
        ),
        CheckConstraint("quantity >= 1", name="ck_cart_line_quantity_positive"),
        UniqueConstraint("user_id", "product_id", name="u_user_product"),
        UniqueConstraint("session_id", "product_id", name="u_session_product"),
        Index("ix_cart_lines_updated_at", "updated_at"),
    )

    @property
    def line_total(self):
        return self.unit_price * self.quantity
