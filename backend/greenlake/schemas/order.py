"""
Pydantic schemas for checkout orders.
"""

from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import Field, model_validator

from greenlake.schemas.base import CamelModel

OrderType = Literal["HOTEL", "ROUTE", "SERVICE", "VEHICLE", "MULTIPLE"]


class OrderCreate(CamelModel):
    total_amount: float = Field(..., gt=0)
    order_type: OrderType
    item_id: int = Field(..., gt=0)
    quantity: int = Field(default=1, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    additional_info: Dict[str, Any] = Field(default_factory=dict)
    payment_method: str = Field(default="CARD", max_length=20)
    discount: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def discount_within_total(self):
        if self.discount > self.total_amount:
            raise ValueError("discount cannot exceed totalAmount")
        return self


class OrderResponse(CamelModel):
    id: int
    user_id: int
    total_amount: float
    discount: float
    tokens_used: int
    order_type: str
    item_id: int
    quantity: int
    start_date: Optional[date]
    end_date: Optional[date]
    additional_info: Dict[str, Any]
    payment_method: str
    status: str
    created_at: datetime
