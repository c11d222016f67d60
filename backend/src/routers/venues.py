# backend/src/routers/venues.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..dependencies import get_discovery, get_metadata_cache
from ..models.errors import http_status_for
from ..schemas.venue import DiscoveryResponse, VenueClassification
from ..services.discovery import DiscoveryService
from ..services.metadata_cache import MetadataCache
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/venues", tags=["Venues"])


@router.get("/nearby", response_model=DiscoveryResponse)
async def nearby_venues(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius: Optional[int] = Query(None, gt=0, le=50000),
    discovery: DiscoveryService = Depends(get_discovery),
):
    """Nightlife venues around the viewer, best for meeting people first"""
    response = await discovery.discover(lat, lon, radius)
    if response.error is not None:
        # A broken search is not the same as nothing nearby
        return JSONResponse(
            status_code=http_status_for(response.error),
            content=response.model_dump(mode="json"),
        )
    return response


@router.get("/{place_id}/classification", response_model=VenueClassification)
async def venue_classification(
    place_id: str,
    name: str = Query(""),
    types: List[str] = Query(default=[]),
    metadata_cache: MetadataCache = Depends(get_metadata_cache),
):
    """Cached nightlife classification, refreshed when stale"""
    return await metadata_cache.get_or_refresh(place_id, types, name)
