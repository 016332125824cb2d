"""
Tourist route endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.schemas.catalog import RouteResponse
from greenlake.services.catalog_service import get_route, list_routes

router = APIRouter(prefix="/routes", tags=["Routes"])


@router.get("", response_model=List[RouteResponse])
async def list_routes_endpoint(
    route_type: Optional[str] = Query(None, alias="type"),
    max_duration: Optional[float] = Query(None, alias="maxDuration", gt=0),
    db: AsyncSession = Depends(get_db),
):
    """Routes sorted by popularity. ``type=all`` disables the type filter."""
    return await list_routes(db, route_type, max_duration)


@router.get("/{route_id}", response_model=RouteResponse)
async def get_route_endpoint(route_id: int, db: AsyncSession = Depends(get_db)):
    """Route detail with per-vehicle usage and all reviews."""
    return await get_route(db, route_id)
