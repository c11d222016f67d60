"""
Classification cache with TTL, stale fallback and rate-limited batch refresh
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from shared.config import Config
from shared.models.base import utcnow
from shared.models.enums import ErrorKind, FlagType
from ..models.errors import ProviderError
from ..schemas.flag import FlagResult, FlagResponse
from ..schemas.venue import Venue, VenueClassification
from .nightlife import ClassificationInputs, NightlifeClassifier
from .places import PlaceDetailsClient
from .repositories import MetadataRepository, FlagRepository

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)


class MetadataCache:
    """
    Serves a VenueClassification for every place id it is asked about.

    A fresh or blocked entry is returned as stored. Anything else triggers a
    details fetch; when that fails a stale entry is served unchanged, and a
    place with no entry at all gets a minimal, category-only entry that stays
    eligible for refresh.
    """

    def __init__(
        self,
        repository: MetadataRepository,
        details_client: PlaceDetailsClient,
        classifier: NightlifeClassifier,
        flags: Optional[FlagRepository] = None,
        ttl: timedelta = DEFAULT_TTL,
        batch_size: int = 5,
        batch_delay: float = 0.1,
        flag_block_threshold: Optional[int] = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.details_client = details_client
        self.classifier = classifier
        self.flags = flags
        self.ttl = ttl
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.flag_block_threshold = flag_block_threshold
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: Config,
        repository: MetadataRepository,
        details_client: PlaceDetailsClient,
        classifier: NightlifeClassifier,
        flags: Optional[FlagRepository] = None,
    ) -> "MetadataCache":
        return cls(
            repository,
            details_client,
            classifier,
            flags=flags,
            ttl=timedelta(days=config.METADATA_TTL_DAYS),
            batch_size=config.REFRESH_BATCH_SIZE,
            batch_delay=config.batch_delay_seconds,
            flag_block_threshold=config.FLAG_BLOCK_THRESHOLD,
        )

    async def get_or_refresh(
        self,
        place_id: str,
        category_tags: Sequence[str] = (),
        name: str = "",
    ) -> VenueClassification:
        now = self.clock()
        cached = await self._lookup(place_id)
        if cached is not None and cached.is_servable(now, self.ttl):
            return cached
        return await self._refresh(place_id, category_tags, name, cached, now)

    async def batch_get_or_refresh(self, venues: Iterable[Venue]) -> Dict[str, VenueClassification]:
        """Classify many venues; at most batch_size details fetches are in flight at once"""
        unique: Dict[str, Venue] = {}
        for venue in venues:
            unique.setdefault(venue.id, venue)
        if not unique:
            return {}

        now = self.clock()
        try:
            cached = await self.repository.get_many(unique.keys())
        except SQLAlchemyError as e:
            logger.error(f"[METADATA] batch lookup failed, refreshing everything: {e}")
            cached = {}

        results: Dict[str, VenueClassification] = {}
        pending: List[Venue] = []
        for place_id, venue in unique.items():
            entry = cached.get(place_id)
            if entry is not None and entry.is_servable(now, self.ttl):
                results[place_id] = entry
            else:
                pending.append(venue)

        logger.info(f"[METADATA] {len(results)} cached, {len(pending)} to refresh")

        for start in range(0, len(pending), self.batch_size):
            if start > 0 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
            batch = pending[start:start + self.batch_size]
            refreshed = await asyncio.gather(
                *(self._refresh_isolated(v, cached.get(v.id), now) for v in batch)
            )
            for venue, entry in zip(batch, refreshed):
                results[venue.id] = entry

        return results

    async def _refresh_isolated(
        self,
        venue: Venue,
        cached: Optional[VenueClassification],
        now: datetime,
    ) -> VenueClassification:
        """One venue's failure never takes down its batch"""
        try:
            return await self._refresh(venue.id, venue.category_tags, venue.name, cached, now)
        except Exception as e:
            logger.error(f"[METADATA] refresh of {venue.id} failed: {e}")
            return cached or self._minimal_entry(venue.id, venue.category_tags, venue.name)

    async def _lookup(self, place_id: str) -> Optional[VenueClassification]:
        try:
            return await self.repository.get(place_id)
        except SQLAlchemyError as e:
            logger.error(f"[METADATA] lookup of {place_id} failed: {e}")
            return None

    async def _refresh(
        self,
        place_id: str,
        category_tags: Sequence[str],
        name: str,
        cached: Optional[VenueClassification],
        now: datetime,
    ) -> VenueClassification:
        try:
            details = await self.details_client.fetch_details(place_id)
        except ProviderError as e:
            if cached is not None:
                logger.warning(f"[METADATA] serving stale entry for {place_id}: {e.kind.value}")
                return cached
            logger.warning(f"[METADATA] no details for {place_id} ({e.kind.value}), storing minimal entry")
            return await self._store_minimal(place_id, category_tags, name)

        entry = self.classifier.evaluate(
            ClassificationInputs(
                place_id=place_id,
                name=details.name or name,
                category_tags=details.category_tags or list(category_tags),
                hours_periods=details.hours_periods,
                review_texts=details.review_texts,
                prior=cached,
            ),
            refreshed_at=now,
        )
        try:
            return await self.repository.upsert(entry)
        except SQLAlchemyError as e:
            logger.error(f"[METADATA] could not save classification for {place_id}: {e}")
            return entry

    def _minimal_entry(self, place_id: str, category_tags: Sequence[str], name: str) -> VenueClassification:
        return self.classifier.evaluate(
            ClassificationInputs(place_id=place_id, name=name, category_tags=list(category_tags))
        )

    async def _store_minimal(self, place_id: str, category_tags: Sequence[str], name: str) -> VenueClassification:
        entry = self._minimal_entry(place_id, category_tags, name)
        try:
            return await self.repository.ensure(entry)
        except SQLAlchemyError as e:
            logger.error(f"[METADATA] could not save minimal entry for {place_id}: {e}")
            return entry

    # Community curation

    def _flag_repository(self) -> FlagRepository:
        if self.flags is None:
            raise RuntimeError("MetadataCache was built without a flag repository")
        return self.flags

    async def record_community_flag(
        self,
        place_id: str,
        reporter_id: str,
        flag_type: FlagType = FlagType.NOT_NIGHTLIFE,
        note: Optional[str] = None,
        category_tags: Sequence[str] = (),
        name: str = "",
    ) -> FlagResult:
        """Count a report against a venue; the score drops on its next classification"""
        flags = self._flag_repository()
        await self.repository.ensure(self._minimal_entry(place_id, category_tags, name))

        count = await flags.record(
            place_id, reporter_id, flag_type, note,
            block_threshold=self.flag_block_threshold,
        )
        if count is None:
            return FlagResult(recorded=False, error=ErrorKind.ALREADY_REPORTED)

        logger.info(f"[FLAGS] {place_id} flagged as {FlagType(flag_type).value}, count={count}")
        return FlagResult(recorded=True, community_flag_count=count)

    async def remove_community_flag(self, place_id: str, reporter_id: str, flag_type: FlagType) -> FlagResult:
        count = await self._flag_repository().remove(place_id, reporter_id, flag_type)
        if count is None:
            return FlagResult(recorded=False, error=ErrorKind.NOT_FOUND)
        logger.info(f"[FLAGS] {reporter_id} withdrew {FlagType(flag_type).value} on {place_id}, count={count}")
        return FlagResult(recorded=True, community_flag_count=count)

    async def flag_counts(self, place_id: str) -> Dict[str, int]:
        return await self._flag_repository().counts(place_id)

    async def reporter_flags(self, reporter_id: str) -> List[FlagResponse]:
        return await self._flag_repository().by_reporter(reporter_id)

    async def set_community_verification(self, place_id: str, verified: Optional[bool]) -> VenueClassification:
        await self.repository.ensure(self._minimal_entry(place_id, (), ""))
        entry = await self.repository.set_verified(place_id, verified)
        logger.info(f"[MODERATION] {place_id} community_verified={verified}")
        return entry

    async def set_blocked(self, place_id: str, blocked: bool) -> VenueClassification:
        await self.repository.ensure(self._minimal_entry(place_id, (), ""))
        entry = await self.repository.set_blocked(place_id, blocked)
        logger.info(f"[MODERATION] {place_id} is_blocked={blocked}")
        return entry
