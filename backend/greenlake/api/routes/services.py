"""
Tourist service endpoints (attractions, museums, restaurants...).
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.schemas.catalog import ServiceResponse
from greenlake.services.catalog_service import get_service, list_services

router = APIRouter(prefix="/services", tags=["Services"])


@router.get("", response_model=List[ServiceResponse])
async def list_services_endpoint(db: AsyncSession = Depends(get_db)):
    return await list_services(db)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service_endpoint(service_id: int, db: AsyncSession = Depends(get_db)):
    return await get_service(db, service_id)
