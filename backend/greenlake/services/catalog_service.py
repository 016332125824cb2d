"""
Read-only catalog: hotels, vehicle types, routes and services.

Everything here is derived from the datasets the ingest pipeline loads.
Scores are recomputed on every read; nothing derived is stored.

Hotel eco score (0-100):
  recycling share  40 pts   recycling_percentage, capped at 100
  energy use       40 pts   0 kWh = 40, 2000 kWh or more = 0
  waste            20 pts   0 kg = 20, 2500 kg or more = 0

Vehicle eco score (list view):
  base score per vehicle type + usage bonus (<= 5) + time bonus (<= 5), capped at 100

Route popularity:
  round(popularity * 0.5 + min(avg_users / 100, 1) * 50)
"""

import math
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.config import get_settings
from greenlake.core.exceptions import NotFoundError
from greenlake.core.logging import get_logger
from greenlake.models.catalog import (
    Hotel,
    HotelOccupancy,
    HotelSustainability,
    Review,
    Route,
    Service,
    TransportUsage,
    VehicleType,
)
from greenlake.schemas.catalog import (
    HotelCalculatedData,
    HotelResponse,
    OccupancyResponse,
    ReviewResponse,
    RouteDetails,
    RouteResponse,
    RouteStats,
    RouteVehicleUsage,
    ServiceResponse,
    ServiceStats,
    SustainabilityResponse,
    UsageTrend,
    VehicleResponse,
    VehicleStats,
)
from greenlake.services.availability_service import available_rooms

logger = get_logger(__name__)
settings = get_settings()

USAGE_WINDOW = 30
HOTEL_LIST_REVIEWS = 3

BASE_ECO_SCORES = {
    "Tranvía": 95,
    "Bicicleta": 100,
    "Autobús": 85,
    "Metro": 90,
    "Taxi": 50,
    "Coche Compartido": 65,
}
DEFAULT_BASE_ECO_SCORE = 60

# Checked in order; first keyword found in the activity name wins
SERVICE_TYPE_KEYWORDS = (
    (("atracción", "atraccion"), "Atracción"),
    (("museo",), "Museo"),
    (("parque",), "Parque"),
    (("teatro",), "Teatro"),
    (("restaurante",), "Restaurante"),
)
COMPANY_SUFFIXES = ("S.L.", "S.Com.", "S.L.N.E")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _average_rating(reviews: Sequence[Review]) -> float:
    return round(_mean([r.rating for r in reviews]), 1)


# --- Scoring ---------------------------------------------------------------

def hotel_eco_score(sustainability: Optional[HotelSustainability]) -> int:
    if sustainability is None:
        return 0

    recycling = min(sustainability.recycling_percentage, 100)
    energy = max(0, min(sustainability.energy_consumption_kwh, 2000))
    waste = max(0, min(sustainability.waste_generated_kg, 2500))

    score = (
        recycling / 100 * 40
        + (2000 - energy) / 2000 * 40
        + (2500 - waste) / 2500 * 20
    )
    return max(0, min(100, round_half_up(score)))


def vehicle_list_score(name: str, avg_users: float, avg_time: float) -> int:
    base = BASE_ECO_SCORES.get(name, DEFAULT_BASE_ECO_SCORE)
    usage_bonus = min(avg_users / 100 * 2.5, 5)
    time_bonus = min((1 - avg_time / 120) * 5, 5)
    return min(round_half_up(base + usage_bonus + time_bonus), 100)


def vehicle_detail_score(avg_users: float, avg_time: float) -> int:
    return min(round_half_up((1 - avg_time / 120) * 50 + avg_users / 1000 * 50), 100)


def route_popularity(base_popularity: Optional[int], avg_users: float) -> int:
    return round_half_up((base_popularity or 0) * 0.5 + min(avg_users / 100, 1) * 50)


def derive_service_type(name: str) -> str:
    """Classify a service from the activity part of its name (after the company suffix)."""
    parts = name.split(" ")
    company_end = next(
        (i for i, part in enumerate(parts) if any(suffix in part for suffix in COMPANY_SUFFIXES)),
        -1,
    )
    activity = " ".join(parts[company_end + 1:]).lower()

    for keywords, service_type in SERVICE_TYPE_KEYWORDS:
        if any(keyword in activity for keyword in keywords):
            return service_type
    return "Otros"


# --- Loaders ---------------------------------------------------------------

async def _latest_occupancy(db: AsyncSession, hotel_id: int) -> Optional[HotelOccupancy]:
    result = await db.execute(
        select(HotelOccupancy)
        .where(HotelOccupancy.hotel_id == hotel_id)
        .order_by(HotelOccupancy.date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _latest_sustainability(db: AsyncSession, hotel_id: int) -> Optional[HotelSustainability]:
    result = await db.execute(
        select(HotelSustainability)
        .where(HotelSustainability.hotel_id == hotel_id)
        .order_by(HotelSustainability.date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _reviews(db: AsyncSession, column, target_id: int, limit: Optional[int] = None) -> List[Review]:
    query = select(Review).where(column == target_id).order_by(Review.date.desc(), Review.id.desc())
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _recent_usages(db: AsyncSession, column, target_id: int) -> List[TransportUsage]:
    result = await db.execute(
        select(TransportUsage)
        .where(column == target_id)
        .order_by(TransportUsage.date.desc(), TransportUsage.id.desc())
        .limit(USAGE_WINDOW)
    )
    return list(result.scalars().all())


# --- Hotels ----------------------------------------------------------------

async def _hotel_response(db: AsyncSession, hotel: Hotel, review_limit: Optional[int]) -> HotelResponse:
    occupancy = await _latest_occupancy(db, hotel.id)
    sustainability = await _latest_sustainability(db, hotel.id)
    reviews = await _reviews(db, Review.hotel_id, hotel.id, review_limit)

    return HotelResponse(
        id=hotel.id,
        name=hotel.name,
        occupancy_data=[OccupancyResponse.model_validate(occupancy)] if occupancy else [],
        sustainability_data=[SustainabilityResponse.model_validate(sustainability)] if sustainability else [],
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
    )


async def list_hotels(db: AsyncSession) -> List[HotelResponse]:
    """Hotels with their latest occupancy and sustainability rows and 3 newest reviews."""
    result = await db.execute(select(Hotel).order_by(Hotel.id))
    return [await _hotel_response(db, hotel, HOTEL_LIST_REVIEWS) for hotel in result.scalars().all()]


async def get_hotel(db: AsyncSession, hotel_id: int) -> HotelResponse:
    hotel = await db.get(Hotel, hotel_id)
    if not hotel:
        raise NotFoundError("Hotel not found")

    response = await _hotel_response(db, hotel, None)

    occupancy = response.occupancy_data[0] if response.occupancy_data else None
    sustainability = await _latest_sustainability(db, hotel.id)
    occupancy_rate = occupancy.occupancy_rate if occupancy else 0

    if response.sustainability_data:
        response.sustainability_data[0].recycling_percentage = min(
            response.sustainability_data[0].recycling_percentage, 100
        )

    response.calculated_data = HotelCalculatedData(
        eco_score=hotel_eco_score(sustainability),
        price_per_night=(occupancy.average_price_per_night if occupancy else 0) / 100,
        available_rooms=available_rooms(occupancy_rate),
        total_rooms=settings.TOTAL_ROOMS,
        occupancy_rate=occupancy_rate,
    )
    return response


# --- Vehicles --------------------------------------------------------------

def _usage_averages(usages: Sequence[TransportUsage]):
    avg_time = _mean([u.average_travel_time_min for u in usages])
    avg_users = _mean([u.user_count for u in usages])
    return avg_users, avg_time


async def list_vehicles(db: AsyncSession) -> List[VehicleResponse]:
    """Vehicle types sorted by eco score, best first."""
    result = await db.execute(select(VehicleType).order_by(VehicleType.id))

    vehicles = []
    for vehicle in result.scalars().all():
        usages = await _recent_usages(db, TransportUsage.vehicle_type_id, vehicle.id)
        avg_users, avg_time = _usage_averages(usages)
        vehicles.append(VehicleResponse(
            id=vehicle.id,
            name=vehicle.name,
            stats=VehicleStats(
                average_travel_time=round_half_up(avg_time),
                average_user_count=round_half_up(avg_users),
                eco_score=vehicle_list_score(vehicle.name, avg_users, avg_time),
                base_eco_score=BASE_ECO_SCORES.get(vehicle.name, DEFAULT_BASE_ECO_SCORE),
            ),
        ))

    vehicles.sort(key=lambda v: v.stats.eco_score, reverse=True)
    return vehicles


async def get_vehicle(db: AsyncSession, vehicle_id: int) -> VehicleResponse:
    vehicle = await db.get(VehicleType, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")

    usages = await _recent_usages(db, TransportUsage.vehicle_type_id, vehicle.id)
    avg_users, avg_time = _usage_averages(usages)

    return VehicleResponse(
        id=vehicle.id,
        name=vehicle.name,
        stats=VehicleStats(
            average_travel_time=round_half_up(avg_time),
            average_user_count=round_half_up(avg_users),
            eco_score=vehicle_detail_score(avg_users, avg_time),
        ),
        usage_trends=[
            UsageTrend(
                date=u.date,
                user_count=u.user_count,
                average_travel_time_min=u.average_travel_time_min,
            )
            for u in usages
        ],
    )


# --- Routes ----------------------------------------------------------------

def _route_summary(route: Route, reviews: Sequence[Review], usages: Sequence[TransportUsage]) -> RouteResponse:
    avg_users = _mean([u.user_count for u in usages])
    return RouteResponse(
        id=route.id,
        name=route.name,
        type=route.route_type or "General",
        details=RouteDetails(
            length_km=route.length_km,
            duration_hr=route.duration_hr,
            popularity=route_popularity(route.popularity, avg_users),
        ),
        stats=RouteStats(
            average_rating=_average_rating(reviews),
            total_reviews=len(reviews),
            recent_usage=len(usages),
        ),
    )


async def list_routes(
    db: AsyncSession,
    route_type: Optional[str] = None,
    max_duration: Optional[float] = None,
) -> List[RouteResponse]:
    """Routes filtered by exact type (``all`` disables it) and max duration, most popular first."""
    query = select(Route).order_by(Route.id)
    if route_type and route_type != "all":
        query = query.where(Route.route_type == route_type)
    if max_duration:
        query = query.where(Route.duration_hr <= max_duration)

    result = await db.execute(query)
    routes = []
    for route in result.scalars().all():
        reviews = await _reviews(db, Review.route_id, route.id)
        usages = await _recent_usages(db, TransportUsage.popular_route_id, route.id)
        routes.append(_route_summary(route, reviews, usages))

    routes.sort(key=lambda r: r.details.popularity, reverse=True)
    return routes


async def get_route(db: AsyncSession, route_id: int) -> RouteResponse:
    route = await db.get(Route, route_id)
    if not route:
        raise NotFoundError("Route not found")

    reviews = await _reviews(db, Review.route_id, route.id)
    result = await db.execute(
        select(TransportUsage, VehicleType.name)
        .join(VehicleType, VehicleType.id == TransportUsage.vehicle_type_id)
        .where(TransportUsage.popular_route_id == route.id)
        .order_by(TransportUsage.date.desc(), TransportUsage.id.desc())
        .limit(USAGE_WINDOW)
    )
    rows = result.all()
    usages = [usage for usage, _ in rows]

    grouped: Dict[str, List[TransportUsage]] = OrderedDict()
    for usage, vehicle_name in rows:
        grouped.setdefault(vehicle_name, []).append(usage)

    response = _route_summary(route, reviews, usages)
    response.transport_usage = [
        RouteVehicleUsage(
            vehicle_type=vehicle_name,
            usage_count=len(group),
            average_users=round_half_up(_mean([u.user_count for u in group])),
            average_travel_time=round_half_up(_mean([u.average_travel_time_min for u in group])),
        )
        for vehicle_name, group in grouped.items()
    ]
    response.reviews = [ReviewResponse.model_validate(r) for r in reviews]
    return response


# --- Services --------------------------------------------------------------

async def list_services(db: AsyncSession) -> List[ServiceResponse]:
    result = await db.execute(select(Service).order_by(Service.id))

    services = []
    for service in result.scalars().all():
        reviews = await _reviews(db, Review.service_id, service.id)
        services.append(ServiceResponse(
            id=service.id,
            name=service.name,
            type=derive_service_type(service.name),
            stats=ServiceStats(
                average_rating=_average_rating(reviews),
                total_reviews=len(reviews),
            ),
        ))
    return services


async def get_service(db: AsyncSession, service_id: int) -> ServiceResponse:
    service = await db.get(Service, service_id)
    if not service:
        raise NotFoundError("Service not found")

    reviews = await _reviews(db, Review.service_id, service.id)
    return ServiceResponse(
        id=service.id,
        name=service.name,
        type=service.service_type or derive_service_type(service.name),
        stats=ServiceStats(
            average_rating=_average_rating(reviews),
            total_reviews=len(reviews),
        ),
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
    )
