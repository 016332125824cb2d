"""
Cart endpoints. HOTEL and VEHICLE lines are availability-checked on add.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.core.security import get_current_user_id
from greenlake.schemas.cart import CartItemCreate, CartItemResponse, CartClearResponse
from greenlake.services import cart_service

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=List[CartItemResponse])
async def get_cart(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Items in the caller's cart; empty list when no cart exists yet."""
    return await cart_service.list_items(db, user_id)


@router.post("", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    item: CartItemCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Add an item, or overwrite the existing line for the same item.
    Returns 400 HOTEL_UNAVAILABLE / VEHICLE_UNAVAILABLE when capacity is gone.
    """
    return await cart_service.add_item(
        db,
        user_id,
        item_type=item.item_type,
        item_id=item.item_id,
        quantity=item.quantity,
        price=item.price,
        start_date=item.start_date,
        end_date=item.end_date,
        additional_info=item.additional_info,
    )


@router.delete("", response_model=CartClearResponse)
async def delete_from_cart(
    item_id: Optional[int] = Query(None, alias="itemId", gt=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Remove one line by cart item id, or clear the whole cart when itemId is omitted."""
    if item_id is not None:
        await cart_service.remove_item(db, user_id, item_id)
        return CartClearResponse(removed=1)

    removed = await cart_service.clear_cart(db, user_id)
    return CartClearResponse(removed=removed)
