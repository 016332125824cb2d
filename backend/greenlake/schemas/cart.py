"""
Pydantic schemas for cart contents.
"""

from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import Field

from greenlake.schemas.base import CamelModel

ItemType = Literal["HOTEL", "ROUTE", "SERVICE", "VEHICLE"]


class CartItemCreate(CamelModel):
    item_type: ItemType
    item_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0, le=100)
    price: float = Field(..., gt=0)
    start_date: date
    end_date: Optional[date] = None
    additional_info: Dict[str, Any] = Field(default_factory=dict)


class CartItemResponse(CamelModel):
    id: int
    cart_id: int
    item_type: str
    item_id: int
    quantity: int
    price: float
    start_date: date
    end_date: Optional[date]
    additional_info: Dict[str, Any]
    created_at: datetime


class CartClearResponse(CamelModel):
    success: bool = True
    removed: int
