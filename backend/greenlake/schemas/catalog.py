"""
Pydantic schemas for the read-only catalog (hotels, vehicles, routes, services).
"""

import datetime as dt
from typing import List, Optional

from greenlake.schemas.base import CamelModel


class ReviewResponse(CamelModel):
    id: int
    date: dt.date
    rating: int
    comment: Optional[str]
    language: str


class OccupancyResponse(CamelModel):
    date: dt.date
    occupancy_rate: float
    confirmed_bookings: int
    cancellations: int
    average_price_per_night: float


class SustainabilityResponse(CamelModel):
    date: dt.date
    energy_consumption_kwh: float
    waste_generated_kg: float
    recycling_percentage: float
    water_usage_m3: float


class HotelCalculatedData(CamelModel):
    eco_score: int
    price_per_night: float
    available_rooms: int
    total_rooms: int
    occupancy_rate: float


class HotelResponse(CamelModel):
    id: int
    name: str
    occupancy_data: List[OccupancyResponse]
    sustainability_data: List[SustainabilityResponse]
    reviews: List[ReviewResponse]
    calculated_data: Optional[HotelCalculatedData] = None


class VehicleStats(CamelModel):
    average_travel_time: int
    average_user_count: int
    eco_score: int
    base_eco_score: Optional[int] = None


class UsageTrend(CamelModel):
    date: dt.date
    user_count: int
    average_travel_time_min: float


class VehicleResponse(CamelModel):
    id: int
    name: str
    stats: VehicleStats
    usage_trends: Optional[List[UsageTrend]] = None


class RouteDetails(CamelModel):
    length_km: Optional[float]
    duration_hr: Optional[float]
    popularity: int


class RouteStats(CamelModel):
    average_rating: float
    total_reviews: int
    recent_usage: int


class RouteVehicleUsage(CamelModel):
    vehicle_type: str
    usage_count: int
    average_users: int
    average_travel_time: int


class RouteResponse(CamelModel):
    id: int
    name: str
    type: str
    details: RouteDetails
    stats: RouteStats
    transport_usage: Optional[List[RouteVehicleUsage]] = None
    reviews: Optional[List[ReviewResponse]] = None


class ServiceStats(CamelModel):
    average_rating: float
    total_reviews: int


class ServiceResponse(CamelModel):
    id: int
    name: str
    type: Optional[str]
    stats: ServiceStats
    reviews: Optional[List[ReviewResponse]] = None
