"""
Availability checks for hotels and vehicles.

These are read-only projections over occupancy data and existing bookings.
They are NOT reservations: two requests can both pass the check and then
both insert. The cart treats a passing check as "bookable right now", and
nothing here takes a lock.

Hotel capacity model:
  Every hotel has TOTAL_ROOMS rooms (100). For each day of the stay,
      available_rooms = round(TOTAL_ROOMS * (100 - occupancy_rate) / 100)
  and the stay needs ceil(guests / GUESTS_PER_ROOM) rooms on every day.
  Days without an occupancy row count as fully free.

Vehicle capacity model:
  One unit per vehicle type. Any overlapping VEHICLE cart item or
  non-cancelled VEHICLE order for the same vehicle blocks the range.
"""

import math
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.config import get_settings
from greenlake.core.exceptions import NotFoundError
from greenlake.core.logging import get_logger
from greenlake.models.cart import CartItem
from greenlake.models.catalog import Hotel, HotelOccupancy, VehicleType
from greenlake.models.order import Order

logger = get_logger(__name__)
settings = get_settings()


def available_rooms(occupancy_rate: float, total_rooms: Optional[int] = None) -> int:
    """Rooms left on a day, rounded half-up."""
    total = settings.TOTAL_ROOMS if total_rooms is None else total_rooms
    return math.floor(total * (100 - occupancy_rate) / 100 + 0.5)


def rooms_needed(guests: int) -> int:
    return math.ceil(guests / settings.GUESTS_PER_ROOM)


async def check_hotel_availability(
    db: AsyncSession,
    hotel_id: int,
    start_date: date,
    end_date: date,
    guests: int,
) -> bool:
    hotel = await db.get(Hotel, hotel_id)
    if not hotel:
        raise NotFoundError("Hotel not found")

    result = await db.execute(
        select(HotelOccupancy.date, HotelOccupancy.occupancy_rate)
        .where(
            HotelOccupancy.hotel_id == hotel_id,
            HotelOccupancy.date >= start_date,
            HotelOccupancy.date <= end_date,
        )
        .order_by(HotelOccupancy.date)
    )

    needed = rooms_needed(guests)
    for day, occupancy_rate in result.all():
        rooms = available_rooms(occupancy_rate)
        if rooms < needed:
            logger.info(
                "hotel_unavailable",
                hotel_id=hotel_id,
                day=str(day),
                available_rooms=rooms,
                rooms_needed=needed,
            )
            return False
    return True


async def check_vehicle_availability(
    db: AsyncSession,
    vehicle_id: int,
    start_date: date,
    end_date: date,
    exclude_cart_id: Optional[int] = None,
) -> bool:
    """
    Vehicle is free iff no booking intent or live order overlaps the range.
    ``exclude_cart_id`` skips the caller's own cart row, which an add-to-cart
    is about to overwrite.
    """
    vehicle = await db.get(VehicleType, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")

    cart_end = func.coalesce(CartItem.end_date, CartItem.start_date)
    cart_query = (
        select(func.count())
        .select_from(CartItem)
        .where(
            CartItem.item_type == "VEHICLE",
            CartItem.item_id == vehicle_id,
            CartItem.start_date <= end_date,
            cart_end >= start_date,
        )
    )
    if exclude_cart_id is not None:
        cart_query = cart_query.where(CartItem.cart_id != exclude_cart_id)
    cart_overlaps = (await db.execute(cart_query)).scalar_one()

    order_end = func.coalesce(Order.end_date, Order.start_date)
    order_overlaps = (await db.execute(
        select(func.count())
        .select_from(Order)
        .where(
            Order.order_type == "VEHICLE",
            Order.item_id == vehicle_id,
            Order.status != "CANCELLED",
            Order.start_date <= end_date,
            order_end >= start_date,
        )
    )).scalar_one()

    if cart_overlaps + order_overlaps:
        logger.info(
            "vehicle_unavailable",
            vehicle_id=vehicle_id,
            cart_overlaps=cart_overlaps,
            order_overlaps=order_overlaps,
        )
        return False
    return True
