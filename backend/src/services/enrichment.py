import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Sequence

from sqlalchemy.exc import SQLAlchemyError

from shared.models.base import utcnow
from shared.models.enums import POSITIVE_VIBES
from ..schemas.venue import Venue, VenueWithActivity
from .repositories import ActivityRepository

logger = logging.getLogger(__name__)

TOP_VIBES = 3
POSITIVE_VIBE_VALUES = frozenset(v.value for v in POSITIVE_VIBES)


def top_vibes(counts: Dict[str, int], limit: int = TOP_VIBES) -> List[str]:
    """Most frequent vibes, ties broken alphabetically"""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [vibe for vibe, count in ranked[:limit] if count > 0]


class ActivityEnrichment:
    """Attaches live presence and vibe counts to venues"""

    def __init__(
        self,
        activity: ActivityRepository,
        window: timedelta = timedelta(hours=4),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.activity = activity
        self.window = window
        self.clock = clock

    async def enrich(self, venues: Sequence[Venue]) -> List[VenueWithActivity]:
        place_ids = [v.id for v in venues]
        since = self.clock() - self.window

        try:
            presence = await self.activity.presence_counts(place_ids, since)
        except SQLAlchemyError as e:
            logger.error(f"[ACTIVITY] presence lookup failed: {e}")
            presence = {}
        try:
            vibes = await self.activity.vibe_counts(place_ids)
        except SQLAlchemyError as e:
            logger.error(f"[ACTIVITY] vibe lookup failed: {e}")
            vibes = {}

        enriched = []
        for venue in venues:
            present, open_to_meeting = presence.get(venue.id, (0, 0))
            venue_vibes = vibes.get(venue.id, {})
            enriched.append(VenueWithActivity(
                **venue.model_dump(),
                present_count=present,
                open_to_meeting_count=open_to_meeting,
                positive_vibe_count=sum(
                    count for vibe, count in venue_vibes.items() if vibe in POSITIVE_VIBE_VALUES
                ),
                top_vibes=top_vibes(venue_vibes),
            ))
        return enriched
