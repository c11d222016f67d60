"""
Shared fixtures: a throw-away SQLite database, an in-memory Redis double and
provider payload builders.
"""
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from shared.config import load_config
from backend.src.database import create_engine, create_session_factory, create_all
from backend.src.schemas.venue import Venue

NOW = datetime(2026, 10, 16, 23, 0, tzinfo=timezone.utc)

# Dourados, MS
USER_LAT = -22.2210
USER_LON = -54.8060


class MemoryRedis:
    """Enough of the redis.asyncio client for CacheService"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def ping(self):
        return True

    async def aclose(self):
        pass


def make_venue(place_id, name=None, tags=("bar",), lat=USER_LAT, lon=USER_LON, **extra):
    return Venue(
        id=place_id,
        name=name or f"Venue {place_id}",
        latitude=lat,
        longitude=lon,
        category_tags=list(tags),
        open_now=True,
        **extra,
    )


def place_result(place_id, name, lat, lng, types=("bar",), open_now=True, **extra):
    """One raw nearby-search result as the provider sends it"""
    result = {
        "place_id": place_id,
        "name": name,
        "vicinity": f"Rua {name}, 100",
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "types": list(types),
        "opening_hours": {"open_now": open_now},
    }
    result.update(extra)
    return result


def weekend_late_periods():
    """Friday and Saturday nights until 03:00"""
    return [
        {"open": {"day": 5, "time": "2000"}, "close": {"day": 6, "time": "0300"}},
        {"open": {"day": 6, "time": "2000"}, "close": {"day": 0, "time": "0300"}},
    ]


@pytest.fixture
def config(tmp_path):
    return load_config(
        GOOGLE_PLACES_API_KEY="test-key",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'nightlife.db'}",
        REDIS_URL="redis://localhost:6379/15",
        ADMIN_TOKEN="moderator-secret",
        REFRESH_BATCH_DELAY_MS=0,
    )


@pytest_asyncio.fixture
async def session_factory(config):
    engine = create_engine(config)
    await create_all(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def memory_redis():
    return MemoryRedis()
