"""
Cart service: per-user collection of pending booking intents.

A cart holds at most one row per (item_type, item_id). Adding an item that
is already in the cart overwrites quantity, price, dates and metadata in
place (last write wins, quantities are not summed).

HOTEL and VEHICLE items are checked for availability before they are
written; the check is advisory (see availability_service).
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.exceptions import AvailabilityError, NotFoundError, ValidationError
from greenlake.core.logging import get_logger
from greenlake.core.metrics import record_cart_addition
from greenlake.models.cart import Cart, CartItem
from greenlake.services.availability_service import (
    check_hotel_availability,
    check_vehicle_availability,
)

logger = get_logger(__name__)


def sanitize_additional_info(additional_info: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Coerce the display fields the cart UI relies on; keep everything else."""
    if not additional_info:
        return {}

    price = additional_info.get("price")
    quantity = additional_info.get("quantity")
    return {
        **additional_info,
        "name": str(additional_info.get("name") or ""),
        "price": price if isinstance(price, (int, float)) and not isinstance(price, bool) else 0,
        "quantity": quantity if isinstance(quantity, int) and not isinstance(quantity, bool) else 1,
    }


async def get_cart(db: AsyncSession, user_id: int) -> Optional[Cart]:
    result = await db.execute(select(Cart).where(Cart.user_id == user_id))
    return result.scalar_one_or_none()


async def list_items(db: AsyncSession, user_id: int) -> List[CartItem]:
    """Cart contents in insertion order; empty when the user has no cart yet."""
    result = await db.execute(
        select(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .where(Cart.user_id == user_id)
        .order_by(CartItem.id)
    )
    return list(result.scalars().all())


async def get_or_create_cart(db: AsyncSession, user_id: int) -> Cart:
    cart = await get_cart(db, user_id)
    if cart:
        return cart

    cart = Cart(user_id=user_id)
    db.add(cart)
    await db.flush()
    await db.refresh(cart)
    logger.info("cart_created", user_id=user_id, cart_id=cart.id)
    return cart


def guest_count(additional_info: Dict[str, Any], quantity: int) -> int:
    """Guests for a HOTEL line; falls back to quantity when the client sends none."""
    guests = additional_info.get("guests")
    if guests is None:
        return quantity
    if isinstance(guests, float) and guests.is_integer():
        guests = int(guests)
    if isinstance(guests, bool) or not isinstance(guests, int) or guests < 1:
        raise ValidationError("Invalid guests")
    return guests


async def _ensure_available(
    db: AsyncSession,
    cart: Cart,
    item_type: str,
    item_id: int,
    quantity: int,
    start_date: date,
    end_date: date,
    additional_info: Dict[str, Any],
) -> None:
    if item_type == "HOTEL":
        guests = guest_count(additional_info, quantity)
        if not await check_hotel_availability(db, item_id, start_date, end_date, guests):
            record_cart_addition(item_type, "unavailable")
            raise AvailabilityError(
                "Not enough rooms available for the selected dates",
                code="HOTEL_UNAVAILABLE",
            )
    elif item_type == "VEHICLE":
        if not await check_vehicle_availability(
            db, item_id, start_date, end_date, exclude_cart_id=cart.id
        ):
            record_cart_addition(item_type, "unavailable")
            raise AvailabilityError(
                "Vehicle is already booked for the selected dates",
                code="VEHICLE_UNAVAILABLE",
            )


async def add_item(
    db: AsyncSession,
    user_id: int,
    item_type: str,
    item_id: int,
    quantity: int,
    price: float,
    start_date: date,
    end_date: Optional[date] = None,
    additional_info: Optional[Dict[str, Any]] = None,
) -> CartItem:
    """
    Add or update a cart line.
    Raises AvailabilityError when a HOTEL/VEHICLE capacity check fails.
    """
    end_date = end_date or start_date
    if end_date < start_date:
        raise ValidationError("End date cannot be before start date")

    info = sanitize_additional_info(additional_info)
    cart = await get_or_create_cart(db, user_id)

    await _ensure_available(db, cart, item_type, item_id, quantity, start_date, end_date, info)

    result = await db.execute(
        select(CartItem).where(
            CartItem.cart_id == cart.id,
            CartItem.item_type == item_type,
            CartItem.item_id == item_id,
        )
    )
    item = result.scalar_one_or_none()

    if item:
        item.quantity = quantity
        item.price = price
        item.start_date = start_date
        item.end_date = end_date
        item.additional_info = info
        outcome = "updated"
    else:
        item = CartItem(
            cart_id=cart.id,
            item_type=item_type,
            item_id=item_id,
            quantity=quantity,
            price=price,
            start_date=start_date,
            end_date=end_date,
            additional_info=info,
        )
        db.add(item)
        outcome = "added"

    await db.flush()
    await db.refresh(item)

    record_cart_addition(item_type, outcome)
    logger.info(
        "cart_item_saved",
        cart_id=cart.id,
        cart_item_id=item.id,
        item_type=item_type,
        item_id=item_id,
        outcome=outcome,
    )
    return item


async def remove_item(db: AsyncSession, user_id: int, cart_item_id: int) -> CartItem:
    """Remove one line by its CartItem id; the line must be in the caller's cart."""
    result = await db.execute(
        select(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .where(CartItem.id == cart_item_id, Cart.user_id == user_id)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError("Item not found in cart")

    await db.delete(item)
    await db.flush()

    logger.info("cart_item_removed", cart_item_id=cart_item_id, user_id=user_id)
    return item


async def clear_cart(db: AsyncSession, user_id: int) -> int:
    """Delete every line in the user's cart. Returns how many were removed."""
    cart = await get_cart(db, user_id)
    if not cart:
        return 0

    result = await db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
    # The bulk delete bypasses the identity map; drop the stale collection
    db.expire(cart, ["items"])

    logger.info("cart_cleared", cart_id=cart.id, items_removed=result.rowcount)
    return result.rowcount
