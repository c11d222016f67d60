# backend/src/services/cache.py
import json
from typing import Any, List, Optional
import redis.asyncio as redis
import logging

from pydantic import ValidationError

from ..schemas.venue import Venue
from ..utils.geo import distance_meters, geo_cell

logger = logging.getLogger(__name__)


class CacheService:
    """Redis cache; every failure is logged and reads as a miss"""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.redis = client if client is not None else redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> Optional[Any]:
        """Get a value by key"""
        try:
            data = await self.redis.get(key)
            return json.loads(data) if data else None
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Set a value with TTL"""
        try:
            await self.redis.setex(key, ttl, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.error(f"Cache ping error: {e}")
            return False

    async def close(self):
        await self.redis.aclose()


def search_cache_key(lat: float, lon: float, start_radius: int) -> str:
    """Viewers within the same ~1 km cell share cached candidates"""
    return f"venues:nearby:{geo_cell(lat, lon)}:{int(start_radius)}"


class SearchResultCache:
    """Radius-expanded candidate lists, keyed by geo cell and start radius"""

    def __init__(self, cache: CacheService, ttl: int = 300):
        self.cache = cache
        self.ttl = ttl

    async def get(self, lat: float, lon: float, start_radius: int) -> Optional[dict]:
        """Cached venues with distances recomputed from this viewer, nearest first"""
        data = await self.cache.get(search_cache_key(lat, lon, start_radius))
        if not data:
            return None
        try:
            venues = [Venue.model_validate(v) for v in data.get("venues", [])]
        except (ValidationError, AttributeError) as e:
            logger.warning(f"Discarding unreadable search cache entry: {e}")
            return None

        venues = [
            v.model_copy(update={"distance_meters": distance_meters(lat, lon, v.latitude, v.longitude)})
            for v in venues
        ]
        venues.sort(key=lambda v: v.distance_meters)
        return {"venues": venues, "radius_meters": data.get("radius_meters")}

    async def set(self, lat: float, lon: float, start_radius: int, venues: List[Venue], radius_meters: Optional[int]) -> bool:
        payload = {
            "venues": [v.model_dump(mode="json") for v in venues],
            "radius_meters": radius_meters,
        }
        return await self.cache.set(search_cache_key(lat, lon, start_radius), payload, ttl=self.ttl)
