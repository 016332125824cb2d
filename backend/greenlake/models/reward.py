"""
Reward offers (discounts, amenities) and their redemption records.

Key design decisions:
- `used_count <= max_uses` is guarded both by the conditional UPDATE in the
  redemption flow and by a CHECK constraint as the final safety net
- `qr_code` is unique across all redemptions of a kind and is never reused
"""

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, JSON, ForeignKey, CheckConstraint, func,
)
from sqlalchemy.orm import relationship

from greenlake.db.base import Base, TimestampMixin


class Discount(Base, TimestampMixin):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    token_cost = Column(Integer, nullable=False)
    discount_type = Column(String(20), nullable=False)  # PERCENTAGE, FIXED_AMOUNT
    discount_value = Column(Float, nullable=False)
    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    applicable_to = Column(JSON, nullable=False, default=list)

    redemptions = relationship("DiscountRedemption", back_populates="discount")

    __table_args__ = (
        CheckConstraint("token_cost > 0", name="check_discount_token_cost_positive"),
        CheckConstraint(
            "discount_type IN ('PERCENTAGE', 'FIXED_AMOUNT')",
            name="check_discount_type",
        ),
        CheckConstraint(
            "max_uses IS NULL OR used_count <= max_uses",
            name="check_discount_used_lte_max",
        ),
    )

    def __repr__(self) -> str:
        return f"<Discount(id={self.id}, name={self.name}, used={self.used_count}/{self.max_uses})>"


class Amenity(Base, TimestampMixin):
    __tablename__ = "amenities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    amenity_type = Column(String(50), nullable=True)
    token_cost = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    max_quantity = Column(Integer, nullable=True)

    purchases = relationship("AmenityPurchase", back_populates="amenity")

    __table_args__ = (
        CheckConstraint("token_cost > 0", name="check_amenity_token_cost_positive"),
    )

    def __repr__(self) -> str:
        return f"<Amenity(id={self.id}, name={self.name}, cost={self.token_cost})>"


class DiscountRedemption(Base):
    __tablename__ = "discount_redemptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    discount_id = Column(Integer, ForeignKey("discounts.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    tokens_paid = Column(Integer, nullable=False)
    qr_code = Column(String(64), unique=True, nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")  # ACTIVE, USED
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    redeemed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    discount = relationship("Discount", back_populates="redemptions", lazy="selectin")


class AmenityPurchase(Base):
    __tablename__ = "amenity_purchases"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amenity_id = Column(Integer, ForeignKey("amenities.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    tokens_paid = Column(Integer, nullable=False)
    qr_code = Column(String(64), unique=True, nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    purchased_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    amenity = relationship("Amenity", back_populates="purchases", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_amenity_purchase_quantity_positive"),
    )
