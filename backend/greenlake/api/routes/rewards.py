"""
Reward endpoints: browse offers and spend EcoTokens on them.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.core.security import get_current_user_id
from greenlake.infrastructure.ledger_client import LedgerClient, get_ledger
from greenlake.schemas.reward import (
    AmenityPurchaseResponse,
    AmenityResponse,
    DiscountRedemptionResponse,
    DiscountResponse,
    PurchaseAmenityRequest,
    RedeemDiscountRequest,
    RedemptionResponse,
    UserRedemptionsResponse,
)
from greenlake.services import reward_service

router = APIRouter(prefix="/rewards", tags=["Rewards"])


@router.post("/redeem-discount", response_model=RedemptionResponse)
async def redeem_discount(
    request: RedeemDiscountRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    """
    Burn tokens for a discount and get a single-use QR code.

    Errors: 400 when the discount is inactive, expired, exhausted or the
    balance is too low; 500 BURN_FAILED when the ledger rejects the burn.
    """
    result = await reward_service.redeem_discount(db, ledger, user_id, request.discount_id)
    return RedemptionResponse(qr_code=result.qr_code, tokens_paid=result.tokens_paid)


@router.post("/purchase-amenity", response_model=RedemptionResponse)
async def purchase_amenity(
    request: PurchaseAmenityRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    """Burn tokens for an amenity (token_cost x quantity) and get a QR code."""
    result = await reward_service.purchase_amenity(
        db, ledger, user_id, request.amenity_id, request.quantity
    )
    return RedemptionResponse(qr_code=result.qr_code, tokens_paid=result.tokens_paid)


@router.get("/discounts", response_model=List[DiscountResponse])
async def list_discounts(
    active_only: bool = Query(True, alias="activeOnly"),
    db: AsyncSession = Depends(get_db),
):
    return await reward_service.list_discounts(db, active_only)


@router.get("/amenities", response_model=List[AmenityResponse])
async def list_amenities(
    active_only: bool = Query(True, alias="activeOnly"),
    db: AsyncSession = Depends(get_db),
):
    return await reward_service.list_amenities(db, active_only)


@router.get("/redemptions", response_model=UserRedemptionsResponse)
async def list_redemptions(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Discounts and amenities the caller has redeemed, newest first."""
    discounts, amenities = await reward_service.list_user_redemptions(db, user_id)
    return UserRedemptionsResponse(
        discounts=[DiscountRedemptionResponse.model_validate(d) for d in discounts],
        amenities=[AmenityPurchaseResponse.model_validate(a) for a in amenities],
    )
