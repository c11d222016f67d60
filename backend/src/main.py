# backend/src/main.py
"""
FastAPI application: wiring and lifespan
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import Config, load_config
from .database import create_engine, create_session_factory, create_all
from .middlewares import RequestLoggingMiddleware
from .routers import venues_router, flags_router, moderation_router, health_router
from .services.cache import CacheService, SearchResultCache
from .services.discovery import DiscoveryService
from .services.enrichment import ActivityEnrichment
from .services.metadata_cache import MetadataCache
from .services.nightlife import NightlifeClassifier
from .services.places import VenueSearchClient, PlaceDetailsClient
from .services.radius import RadiusExpansionController
from .services.repositories import MetadataRepository, FlagRepository, ActivityRepository
from .services.verified_venues import VerifiedVenueRegistry

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_components(app: FastAPI, http_client: httpx.AsyncClient, cache: CacheService):
    """Construct the pipeline from app.state.config and hang it on app.state"""
    config: Config = app.state.config
    session_factory = app.state.session_factory
    api_key = config.clean_places_api_key

    search_client = VenueSearchClient(
        api_key,
        timeout=config.HTTP_TIMEOUT_SECONDS,
        language=config.PLACES_LANGUAGE,
        client=http_client,
        category_queries=config.CATEGORY_QUERIES,
    )
    details_client = PlaceDetailsClient(
        api_key,
        timeout=config.HTTP_TIMEOUT_SECONDS,
        language=config.PLACES_LANGUAGE,
        client=http_client,
    )
    registry = VerifiedVenueRegistry()
    metadata_cache = MetadataCache.from_config(
        config,
        MetadataRepository(session_factory),
        details_client,
        NightlifeClassifier(registry),
        flags=FlagRepository(session_factory),
    )
    enrichment = ActivityEnrichment(
        ActivityRepository(session_factory),
        window=timedelta(hours=config.ACTIVITY_WINDOW_HOURS),
    )
    discovery = DiscoveryService.from_config(
        config,
        RadiusExpansionController(search_client, steps=config.RADIUS_STEPS),
        metadata_cache,
        enrichment,
        search_cache=SearchResultCache(cache, ttl=config.SEARCH_CACHE_TTL_SECONDS),
    )

    app.state.cache = cache
    app.state.metadata_cache = metadata_cache
    app.state.discovery = discovery


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    config: Config = app.state.config
    logger.info("Starting nightlife discovery API...")

    engine = create_engine(config)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    try:
        await create_all(engine)
    except Exception as e:
        logger.error(f"❌ Database initialisation failed: {e}")

    if not config.clean_places_api_key:
        logger.warning("⚠️  GOOGLE_PLACES_API_KEY not set, venue search will report a configuration error")

    http_client = app.state.http_client or httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS)
    cache = CacheService(config.REDIS_URL, client=app.state.redis_client)
    build_components(app, http_client, cache)
    logger.info(f"✅ Ready: radius steps {config.RADIUS_STEPS}, batch size {config.REFRESH_BATCH_SIZE}")

    yield

    logger.info("Stopping nightlife discovery API...")
    if app.state.http_client is None:
        await http_client.aclose()
    await cache.close()
    await engine.dispose()


def create_app(
    config: Optional[Config] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    redis_client=None,
) -> FastAPI:
    app = FastAPI(
        title="Nightlife Discovery API",
        description="Nearby nightlife venues, classified and ranked for meeting people",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.config = config or load_config()
    app.state.http_client = http_client
    app.state.redis_client = redis_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(venues_router, prefix="/api/v1")
    app.include_router(flags_router, prefix="/api/v1")
    app.include_router(moderation_router, prefix="/api/v1")
    app.include_router(health_router)

    @app.get("/")
    async def root():
        return {
            "message": "Nightlife Discovery API is running",
            "docs": "/docs",
            "version": "1.0.0",
        }

    return app


app = create_app()


if __name__ == "__main__":
    # python -m backend.src.main
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
