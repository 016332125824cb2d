"""
Checkout endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.core.security import get_current_user_id
from greenlake.schemas.order import OrderCreate, OrderResponse
from greenlake.services.order_service import create_order, list_orders

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order_endpoint(
    order_data: OrderCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a completed checkout.
    Resubmitting the same order within a few minutes returns the original.
    """
    return await create_order(db, user_id, **order_data.model_dump())


@router.get("", response_model=List[OrderResponse])
async def list_orders_endpoint(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all orders for the authenticated user, newest first."""
    return await list_orders(db, user_id)
