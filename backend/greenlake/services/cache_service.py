"""
Redis caching for catalog listings.

CACHING STRATEGY
================

What we cache:
  - The hotel listing response (JSON-serialized, camelCase as sent to clients)
  - Cache key: "catalog:hotels:list"

Why:
  - Hotel listings are the most frequent catalog read and fan out into
    several queries per hotel
  - The data only changes when the ingest pipeline loads a new dataset

Invalidation strategy:
  - The ingest consumer deletes every "catalog:hotels:*" key after it stores
    hotel, occupancy, sustainability or review data
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

Why NOT cache hotel details:
  - The detail view feeds booking decisions (available rooms); a stale
    projection there is worse than an extra query

Redis being down is never an error: every helper degrades to a cache miss.
"""

import json
from typing import Any, List, Optional

from greenlake.core.config import get_settings
from greenlake.core.logging import get_logger
from greenlake.core.metrics import record_cache_operation
from greenlake.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

HOTEL_CACHE_PREFIX = "catalog:hotels:"
HOTEL_LIST_KEY = f"{HOTEL_CACHE_PREFIX}list"


async def get_cached_hotels() -> Optional[List[Any]]:
    """Retrieve the cached hotel listing."""
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(HOTEL_LIST_KEY)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=HOTEL_LIST_KEY)
            return json.loads(data)
        logger.debug("cache_miss", key=HOTEL_LIST_KEY)
    except Exception as e:
        logger.error("cache_get_error", key=HOTEL_LIST_KEY, error=str(e))

    return None


async def set_cached_hotels(data: List[Any]) -> None:
    """Cache the hotel listing with TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(HOTEL_LIST_KEY, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=HOTEL_LIST_KEY, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=HOTEL_LIST_KEY, error=str(e))


async def invalidate_hotel_cache() -> None:
    """Drop every cached hotel listing (SCAN over the key prefix)."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{HOTEL_CACHE_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", prefix=HOTEL_CACHE_PREFIX, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
