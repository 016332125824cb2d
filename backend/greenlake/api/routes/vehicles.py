"""
Vehicle type endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.schemas.catalog import VehicleResponse
from greenlake.services.catalog_service import get_vehicle, list_vehicles

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("", response_model=List[VehicleResponse])
async def list_vehicles_endpoint(db: AsyncSession = Depends(get_db)):
    """Vehicle types sorted by eco score."""
    return await list_vehicles(db)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle_endpoint(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    return await get_vehicle(db, vehicle_id)
