"""
Order model: an immutable snapshot of a completed checkout.
"""

from sqlalchemy import Column, Integer, String, Float, Date, JSON, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from greenlake.db.base import Base, TimestampMixin

ORDER_TYPES = ("HOTEL", "ROUTE", "SERVICE", "VEHICLE", "MULTIPLE")


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    total_amount = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)
    tokens_used = Column(Integer, nullable=False, default=0)
    order_type = Column(String(20), nullable=False)
    item_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    additional_info = Column(JSON, nullable=False, default=dict)
    payment_method = Column(String(20), nullable=False, default="CARD")
    status = Column(String(20), nullable=False, default="COMPLETED")  # COMPLETED, CANCELLED

    user = relationship("User", back_populates="orders")

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_order_total_non_negative"),
        CheckConstraint("discount >= 0", name="check_order_discount_non_negative"),
        CheckConstraint("status IN ('COMPLETED', 'CANCELLED')", name="check_order_status"),
        Index("ix_orders_type_item_dates", "order_type", "item_id", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, user={self.user_id}, {self.order_type}:{self.item_id}, total={self.total_amount})>"
