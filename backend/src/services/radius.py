import logging
from typing import List, Optional, Sequence

from ..schemas.venue import SearchResult
from .places import VenueSearchClient

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_STEPS = (2000, 5000, 10000, 20000)


def steps_from(start_radius: int, steps: Sequence[int]) -> List[int]:
    """Steps to try, beginning at the first one that covers start_radius"""
    ordered = sorted(set(int(s) for s in steps))
    if not ordered:
        return [int(start_radius)]
    for index, step in enumerate(ordered):
        if step >= start_radius:
            return ordered[index:]
    # Start radius beyond the widest step: one search at the widest step
    return ordered[-1:]


class RadiusExpansionController:
    """Widens the search radius step by step until something turns up"""

    def __init__(self, search_client: VenueSearchClient, steps: Sequence[int] = DEFAULT_RADIUS_STEPS):
        self.search_client = search_client
        self.steps = tuple(steps)

    async def search_with_expansion(
        self,
        lat: float,
        lon: float,
        start_radius: int,
        steps: Optional[Sequence[int]] = None,
    ) -> SearchResult:
        plan = steps_from(start_radius, steps if steps is not None else self.steps)
        result = SearchResult(radius_meters=plan[-1])

        # Sequential on purpose: each step decides whether the next one runs
        for radius in plan:
            result = await self.search_client.search(lat, lon, radius)
            if not result.ok:
                logger.warning(f"[RADIUS] search failed at {radius}m: {result.error.value}")
                return SearchResult(error=result.error, radius_meters=radius)
            if result.venues:
                logger.info(f"[RADIUS] {len(result.venues)} venues at {radius}m")
                return SearchResult(venues=result.venues, radius_meters=radius)
            logger.debug(f"[RADIUS] nothing at {radius}m, widening")

        logger.info(f"[RADIUS] no venues up to {plan[-1]}m")
        return SearchResult(venues=[], radius_meters=plan[-1])
