"""
Per-topic message handlers for the ingest consumer.

Each handler takes the decoded message payload (camelCase keys, as the
producer writes them) and stores it. Handlers only flush; the consumer
owns the transaction and commits once per message.

Parents (hotels, routes, vehicle types) are upserted by their unique name
and cached in an EntityMap, so replaying a stream does not duplicate them.
Time-series rows (usage, occupancy, sustainability, reviews) are appended.

Return value is the outcome recorded in metrics: "stored" or "skipped".
"""

from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.logging import get_logger
from greenlake.ingest import topics
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

logger = get_logger(__name__)

STORED = "stored"
SKIPPED = "skipped"


class EntityMap:
    """
    In-memory name -> id map for parent entities.

    Preloaded from the database on consumer start; misses fall back to a
    lookup by name. Must be reset after a rolled-back message, since ids
    created inside that transaction no longer exist.
    """

    MODELS = {
        "hotels": Hotel,
        "routes": Route,
        "vehicle_types": VehicleType,
    }

    def __init__(self):
        self._ids: Dict[str, Dict[str, int]] = {kind: {} for kind in self.MODELS}

    async def load(self, db: AsyncSession) -> None:
        for kind, model in self.MODELS.items():
            result = await db.execute(select(model.id, model.name))
            self._ids[kind] = {name: id_ for id_, name in result.all()}

        logger.info(
            "entity_map_loaded",
            hotels=len(self._ids["hotels"]),
            routes=len(self._ids["routes"]),
            vehicle_types=len(self._ids["vehicle_types"]),
        )

    def reset(self) -> None:
        for ids in self._ids.values():
            ids.clear()

    def remember(self, kind: str, name: str, entity_id: int) -> None:
        self._ids[kind][name] = entity_id

    async def resolve(self, db: AsyncSession, kind: str, name: str, create: bool = False) -> Optional[int]:
        """Id for ``name``; creates a bare parent row when ``create`` is set."""
        if name in self._ids[kind]:
            return self._ids[kind][name]

        model = self.MODELS[kind]
        result = await db.execute(select(model.id).where(model.name == name))
        entity_id = result.scalar_one_or_none()

        if entity_id is None and create:
            entity = model(name=name)
            db.add(entity)
            await db.flush()
            entity_id = entity.id
            logger.info("ingest_parent_created", kind=kind, name=name)

        if entity_id is not None:
            self._ids[kind][name] = entity_id
        return entity_id


def parse_date(value: Any) -> date:
    """Accepts DD/MM/YYYY (dataset format) or ISO YYYY-MM-DD."""
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if "/" in text:
        return datetime.strptime(text, "%d/%m/%Y").date()
    return date.fromisoformat(text[:10])


def _name(data: Dict[str, Any], key: str) -> str:
    return str(data.get(key) or "").strip()


# --- Parents ---------------------------------------------------------------

async def handle_route(db: AsyncSession, entities: EntityMap, data: Dict[str, Any]) -> str:
    name = _name(data, "name")
    if not name:
        logger.warning("ingest_skipped", topic=topics.ROUTES, reason="missing_name")
        return SKIPPED

    result = await db.execute(select(Route).where(Route.name == name))
    route = result.scalar_one_or_none()
    if route is None:
        route = Route(name=name)
        db.add(route)

    # A route first seen through transport usage or a review is a bare
    # placeholder; the routes dataset fills in its details
    route.route_type = data.get("routeType") or route.route_type
    for attr, key in (("length_km", "lengthKm"), ("duration_hr", "durationHr"), ("popularity", "popularity")):
        if data.get(key) is not None:
            setattr(route, attr, data[key])

    await db.flush()
    entities.remember("routes", name, route.id)
    return STORED


async def handle_vehicle_type(db: AsyncSession, entities: EntityMap, data: Dict[str, Any]) -> str:
    name = _name(data, "name")
    if not name:
        logger.warning("ingest_skipped", topic=topics.VEHICLE_TYPES, reason="missing_name")
        return SKIPPED
    await entities.resolve(db, "vehicle_types", name, create=True)
    return STORED


async def handle_hotel(db: AsyncSession, entities: EntityMap, data: Dict[str, Any]) -> str:
    name = _name(data, "name")
    if not name:
        logger.warning("ingest_skipped", topic=topics.HOTELS, reason="missing_name")
        return SKIPPED
    await entities.resolve(db, "hotels", name, create=True)
    return STORED


# --- Time series -----------------------------------------------------------

async def handle_transport_usage(db: AsyncSession, entities: EntityMap, data: Dict[str, Any]) -> str:
    vehicle_name = _name(data, "vehicleType")
    vehicle_type_id = await entities.resolve(db, "vehicle_types", vehicle_name)
    if vehicle_type_id is None:
        logger.warning("ingest_parent_missing", topic=topics.TRANSPORT_USAGE, vehicle_type=vehicle_name)
        return SKIPPED

    route_name = _name(data, "popularRoute")
    route_id = await entities.resolve(db, "routes", route_name, create=True) if route_name else None

    db.add(TransportUsage(
        date=parse_date(data["date"]),
        vehicle_type_id=vehicle_type_id,
        user_count=data["userCount"],
        average_travel_time_min=data["averageTravelTimeMin"],
        popular_route_id=route_id,
    ))
    await db.flush()
    return STORED


async def handle_hotel_sustainability(db: AsyncSession, entities: EntityMap, data: Dict[str, Any]) -> str:
    hotel_name = _name(data, "hotelName")
    hotel_id = await entities.resolve(db, "hotels", hotel_name)
    if hotel_id is None:
        logger.warning("ingest_parent_missing", topic=topics.HOTEL_SUSTAINABILITY, hotel=hotel_name)
        return SKIPPED

    db.add(HotelSustainability(
        hotel_id=hotel_id,
        date=parse_date(data["date"]),
        energy_consumption_kwh=data["energyConsumptionKwh"],
        waste_generated_kg=data["wasteGeneratedKg"],
        recycling_percentage=data["recyclingPercentage"],
        water_usage_m3=data["waterUsageM3"],
    ))
    await db.flush()
    return STORED


async def handle_hotel_occupancy(db: AsyncSession, entities: EntityMap, data: Dict[str, Any]) -> str:
    hotel_name = _name(data, "hotelName")
    hotel_id = await entities.resolve(db, "hotels", hotel_name)
    if hotel_id is None:
        logger.warning("ingest_parent_missing", topic=topics.HOTEL_OCCUPANCY, hotel=hotel_name)
        return SKIPPED

    db.add(HotelOccupancy(
        hotel_id=hotel_id,
        date=parse_date(data["date"]),
        occupancy_rate=data["occupancyRate"],
        confirmed_bookings=data.get("confirmedBookings") or 0,
        cancellations=data.get("cancellations") or 0,
        average_price_per_night=data.get("averagePricePerNight") or 0,
    ))
    await db.flush()
    return STORED


async def handle_review(db: AsyncSession, entities: EntityMap, data: Dict[str, Any]) -> str:
    """Attach a review to a hotel, a route ("Ruta") or a service, creating the target if needed."""
    target_name = _name(data, "serviceName")
    if not target_name:
        logger.warning("ingest_skipped", topic=topics.REVIEWS, reason="missing_target")
        return SKIPPED

    review = Review(
        date=parse_date(data["date"]),
        rating=data["rating"],
        comment=data.get("comment"),
        language=data.get("language") or "es",
    )

    service_type = data.get("serviceType")
    if service_type == "Hotel":
        review.hotel_id = await entities.resolve(db, "hotels", target_name, create=True)
    elif service_type == "Ruta":
        review.route_id = await entities.resolve(db, "routes", target_name, create=True)
    else:
        result = await db.execute(select(Service).where(Service.name == target_name))
        service = result.scalar_one_or_none()
        if service is None:
            service = Service(name=target_name, service_type=service_type)
            db.add(service)
            await db.flush()
        review.service_id = service.id

    db.add(review)
    await db.flush()
    return STORED


Handler = Callable[[AsyncSession, EntityMap, Dict[str, Any]], Awaitable[str]]

HANDLERS: Dict[str, Handler] = {
    topics.ROUTES: handle_route,
    topics.VEHICLE_TYPES: handle_vehicle_type,
    topics.HOTELS: handle_hotel,
    topics.TRANSPORT_USAGE: handle_transport_usage,
    topics.HOTEL_SUSTAINABILITY: handle_hotel_sustainability,
    topics.HOTEL_OCCUPANCY: handle_hotel_occupancy,
    topics.REVIEWS: handle_review,
}
