"""
Cart and cart item models.

Key design decisions:
- One cart per user, created lazily on first add
- Unique constraint on (cart_id, item_type, item_id): re-adding an item
  updates the existing row instead of inserting a duplicate
- `price` is the precomputed line total, not a unit price
"""

from sqlalchemy import (
    Column, Integer, String, Float, Date, JSON, ForeignKey, UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from greenlake.db.base import Base, TimestampMixin

ITEM_TYPES = ("HOTEL", "ROUTE", "SERVICE", "VEHICLE")


class Cart(Base, TimestampMixin):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    user = relationship("User", back_populates="cart")
    items = relationship(
        "CartItem",
        back_populates="cart",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def __repr__(self) -> str:
        return f"<Cart(id={self.id}, user={self.user_id})>"


class CartItem(Base, TimestampMixin):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    item_type = Column(String(20), nullable=False)
    item_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    additional_info = Column(JSON, nullable=False, default=dict)

    cart = relationship("Cart", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "item_type", "item_id", name="uq_cart_item"),
        CheckConstraint("quantity > 0", name="check_cart_item_quantity_positive"),
        CheckConstraint(
            "item_type IN ('HOTEL', 'ROUTE', 'SERVICE', 'VEHICLE')",
            name="check_cart_item_type",
        ),
        # Vehicle availability scans cart items by (type, item, dates)
        Index("ix_cart_items_type_item_dates", "item_type", "item_id", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<CartItem(id={self.id}, cart={self.cart_id}, {self.item_type}:{self.item_id})>"
