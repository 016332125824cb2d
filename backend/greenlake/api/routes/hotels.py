"""
Hotel catalog endpoints with Redis caching on the list operation.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.schemas.catalog import HotelResponse
from greenlake.services.catalog_service import get_hotel, list_hotels
from greenlake.services.cache_service import get_cached_hotels, set_cached_hotels
from greenlake.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/hotels", tags=["Hotels"])


@router.get("", response_model=List[HotelResponse])
async def list_hotels_endpoint(db: AsyncSession = Depends(get_db)):
    """
    List hotels with their latest occupancy and sustainability data.
    Results are cached in Redis; the ingest consumer invalidates the cache.
    """
    cached = await get_cached_hotels()
    if cached is not None:
        logger.info("hotels_list_cache_hit", count=len(cached))
        return cached

    hotels = await list_hotels(db)
    await set_cached_hotels([h.model_dump(mode="json", by_alias=True) for h in hotels])
    return hotels


@router.get("/{hotel_id}", response_model=HotelResponse)
async def get_hotel_endpoint(hotel_id: int, db: AsyncSession = Depends(get_db)):
    """Hotel detail with eco score, price per night and available rooms. Not cached."""
    return await get_hotel(db, hotel_id)
