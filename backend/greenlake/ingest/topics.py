"""
Topic names and their Redis Stream keys.
"""

from typing import Tuple

from greenlake.core.config import get_settings

settings = get_settings()

ROUTES = "routes"
VEHICLE_TYPES = "vehicle-types"
TRANSPORT_USAGE = "transport-usage"
HOTELS = "hotels"
HOTEL_SUSTAINABILITY = "hotel-sustainability"
HOTEL_OCCUPANCY = "hotel-occupancy"
REVIEWS = "reviews"

# Parent topics come first so one consumer pass sees parents before dependents
ALL_TOPICS: Tuple[str, ...] = (
    ROUTES,
    VEHICLE_TYPES,
    HOTELS,
    TRANSPORT_USAGE,
    HOTEL_SUSTAINABILITY,
    HOTEL_OCCUPANCY,
    REVIEWS,
)

# Topics whose data shows up in the cached hotel listing
HOTEL_TOPICS = frozenset({HOTELS, HOTEL_SUSTAINABILITY, HOTEL_OCCUPANCY, REVIEWS})


def stream_name(topic: str) -> str:
    return f"{settings.INGEST_STREAM_PREFIX}:{topic}"


def topic_from_stream(stream: str) -> str:
    prefix = f"{settings.INGEST_STREAM_PREFIX}:"
    return stream[len(prefix):] if stream.startswith(prefix) else stream
