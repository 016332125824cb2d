"""
Pydantic schemas for accounts, profiles and wallets.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from greenlake.schemas.base import CamelModel

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[!@#$%^&*]"), "Password must contain at least one special character (!@#$%^&*)"),
)


class UserCreate(CamelModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        for pattern, message in _PASSWORD_RULES:
            if not pattern.search(value):
                raise ValueError(message)
        return value


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime


class UserProfile(CamelModel):
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    wallet_address: Optional[str] = None
    created_at: datetime
    # Projection of the ledger balance, read on every request
    balance: str = "0"


class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)


class WalletResponse(CamelModel):
    success: bool = True
    address: str


class Token(BaseModel):
    """Token response. Keys stay snake_case as in RFC 6749."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class TransferRequest(CamelModel):
    to: str = Field(..., min_length=1, max_length=64)
    amount: int = Field(..., gt=0)


class TransferResponse(CamelModel):
    success: bool = True
    transaction_hash: Optional[str] = None
