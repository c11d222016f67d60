"""
Discovery pipeline:
    search (with radius expansion, or the cached candidate list)
    -> batch classification -> nightlife threshold
    -> activity enrichment -> dating score -> ranked list
"""

import logging
from typing import Optional

from shared.config import Config
from ..schemas.venue import DiscoveryResponse, RankedVenue, VenueClassification, VenueWithActivity
from ..utils.geo import format_distance
from . import dating
from .cache import SearchResultCache
from .enrichment import ActivityEnrichment
from .metadata_cache import MetadataCache
from .nightlife import NIGHTLIFE_SCORE_THRESHOLD, nightlife_score_label, passes_nightlife_filter
from .radius import RadiusExpansionController

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Ranked nightlife venues around a viewer"""

    def __init__(
        self,
        radius: RadiusExpansionController,
        metadata_cache: MetadataCache,
        enrichment: ActivityEnrichment,
        search_cache: Optional[SearchResultCache] = None,
        default_radius: int = 2000,
        nightlife_threshold: int = NIGHTLIFE_SCORE_THRESHOLD,
    ):
        self.radius = radius
        self.metadata_cache = metadata_cache
        self.enrichment = enrichment
        self.search_cache = search_cache
        self.default_radius = default_radius
        self.nightlife_threshold = nightlife_threshold

    @classmethod
    def from_config(cls, config: Config, radius, metadata_cache, enrichment, search_cache=None) -> "DiscoveryService":
        return cls(
            radius,
            metadata_cache,
            enrichment,
            search_cache=search_cache,
            default_radius=config.DEFAULT_SEARCH_RADIUS,
            nightlife_threshold=config.NIGHTLIFE_SCORE_THRESHOLD,
        )

    async def discover(self, lat: float, lon: float, radius_meters: Optional[int] = None) -> DiscoveryResponse:
        start_radius = radius_meters or self.default_radius
        from_cache = False

        cached = None
        if self.search_cache is not None:
            cached = await self.search_cache.get(lat, lon, start_radius)

        if cached is not None:
            venues, searched_radius = cached["venues"], cached["radius_meters"]
            from_cache = True
            logger.info(f"[DISCOVERY] {len(venues)} candidates from search cache")
        else:
            result = await self.radius.search_with_expansion(lat, lon, start_radius)
            if not result.ok:
                return DiscoveryResponse(error=result.error, radius_meters=result.radius_meters)
            venues, searched_radius = result.venues, result.radius_meters
            if self.search_cache is not None:
                await self.search_cache.set(lat, lon, start_radius, venues, searched_radius)

        classifications = await self.metadata_cache.batch_get_or_refresh(venues)
        kept = [
            v for v in venues
            if passes_nightlife_filter(classifications.get(v.id), self.nightlife_threshold)
        ]
        logger.info(f"[DISCOVERY] {len(kept)}/{len(venues)} venues pass the nightlife filter")

        enriched = await self.enrichment.enrich(kept)
        ranked = [rank_venue(v, classifications.get(v.id)) for v in enriched]

        return DiscoveryResponse(
            venues=dating.sort_by_dating_score(ranked),
            radius_meters=searched_radius,
            from_cache=from_cache,
        )


def rank_venue(venue: VenueWithActivity, classification: Optional[VenueClassification]) -> RankedVenue:
    nightlife_score = classification.nightlife_score if classification else 0
    dating_score = dating.score(
        venue.category_tags,
        venue.rating,
        venue.price_level,
        venue.distance_meters,
        venue.open_to_meeting_count,
        venue.positive_vibe_count,
    )
    return RankedVenue(
        **venue.model_dump(),
        nightlife_score=nightlife_score,
        nightlife_label=nightlife_score_label(nightlife_score),
        dating_score=dating_score,
        dating_label=dating.dating_score_label(dating_score),
        distance_label=format_distance(venue.distance_meters),
    )
