"""
User model with secure password storage and an optional custodial wallet.

The EcoToken balance is deliberately not a column: the ledger is the only
source of truth and the profile endpoint reads it live.
"""

from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship

from greenlake.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="USER")
    is_active = Column(Boolean, default=True, nullable=False)

    # Set once by the wallet-creation step
    wallet_address = Column(String(64), unique=True, nullable=True)
    private_key = Column(String(128), nullable=True)

    # Relationships
    cart = relationship("Cart", back_populates="user", uselist=False)
    orders = relationship("Order", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
