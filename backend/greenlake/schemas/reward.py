"""
Pydantic schemas for reward offers and redemptions.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from greenlake.schemas.base import CamelModel


class RedeemDiscountRequest(CamelModel):
    discount_id: int = Field(..., gt=0)


class PurchaseAmenityRequest(CamelModel):
    amenity_id: int = Field(..., gt=0)
    quantity: int = Field(default=1, gt=0)


class RedemptionResponse(CamelModel):
    success: bool = True
    qr_code: str
    tokens_paid: int


class DiscountResponse(CamelModel):
    id: int
    name: str
    description: Optional[str]
    token_cost: int
    discount_type: str
    discount_value: float
    valid_from: datetime
    valid_until: datetime
    max_uses: Optional[int]
    used_count: int
    is_active: bool
    applicable_to: List[str]


class AmenityResponse(CamelModel):
    id: int
    name: str
    description: Optional[str]
    amenity_type: Optional[str]
    token_cost: int
    is_active: bool
    max_quantity: Optional[int]


class DiscountRedemptionResponse(CamelModel):
    id: int
    discount_id: int
    tokens_paid: int
    qr_code: str
    status: str
    is_used: bool
    redeemed_at: datetime


class AmenityPurchaseResponse(CamelModel):
    id: int
    amenity_id: int
    quantity: int
    tokens_paid: int
    qr_code: str
    status: str
    is_used: bool
    purchased_at: datetime


class UserRedemptionsResponse(CamelModel):
    discounts: List[DiscountRedemptionResponse]
    amenities: List[AmenityPurchaseResponse]
