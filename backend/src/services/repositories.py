"""
Persistence for classifications, community flags and activity.

Every method opens its own session so callers can run them concurrently.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, update, delete, func, case, and_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from shared.models import VenueMetadata, VenueFlag, CheckIn, VenueVibe
from shared.models.base import utcnow
from shared.models.enums import FlagType
from ..schemas.flag import FlagResponse
from ..schemas.venue import VenueClassification

logger = logging.getLogger(__name__)

# Columns a details refresh owns; flag count, block and verification belong to the community
REFRESH_COLUMNS = (
    "opening_hours",
    "closes_late_on_weekend",
    "opens_in_evening",
    "review_keywords_positive",
    "review_keywords_negative",
    "last_refreshed_at",
)


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert not supported for dialect {dialect}")


def _to_classification(row: VenueMetadata) -> VenueClassification:
    return VenueClassification.model_validate(row)


def _row_values(entry: VenueClassification) -> Dict:
    now = utcnow()
    return {
        "place_id": entry.place_id,
        "opening_hours": entry.opening_hours,
        "closes_late_on_weekend": entry.closes_late_on_weekend,
        "opens_in_evening": entry.opens_in_evening,
        "review_keywords_positive": entry.review_keywords_positive,
        "review_keywords_negative": entry.review_keywords_negative,
        "community_verified": entry.community_verified,
        "is_blocked": entry.is_blocked,
        "community_flag_count": entry.community_flag_count,
        "nightlife_score": 0 if entry.is_blocked else entry.nightlife_score,
        "last_refreshed_at": entry.last_refreshed_at,
        "created_at": now,
        "updated_at": now,
    }


def _flag_increment(place_id: str, block_threshold: Optional[int]):
    """Single UPDATE bumping the counter; crossing the threshold blocks in the same statement"""
    new_count = VenueMetadata.community_flag_count + 1
    values = {
        "community_flag_count": new_count,
        "updated_at": utcnow(),
    }
    if block_threshold:
        reached = new_count >= block_threshold
        values["is_blocked"] = case((reached, True), else_=VenueMetadata.is_blocked)
        values["nightlife_score"] = case((reached, 0), else_=VenueMetadata.nightlife_score)
    return update(VenueMetadata).where(VenueMetadata.place_id == place_id).values(**values)


def _flag_decrement(place_id: str):
    return (
        update(VenueMetadata)
        .where(VenueMetadata.place_id == place_id)
        .values(
            community_flag_count=case(
                (VenueMetadata.community_flag_count > 0, VenueMetadata.community_flag_count - 1),
                else_=0,
            ),
            updated_at=utcnow(),
        )
    )


async def _flag_count(session: AsyncSession, place_id: str) -> Optional[int]:
    result = await session.execute(
        select(VenueMetadata.community_flag_count).where(VenueMetadata.place_id == place_id)
    )
    return result.scalar_one_or_none()


class MetadataRepository:
    """venue_metadata table"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get(self, place_id: str) -> Optional[VenueClassification]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(VenueMetadata).where(VenueMetadata.place_id == place_id)
            )
            row = result.scalar_one_or_none()
            return _to_classification(row) if row else None

    async def get_many(self, place_ids: Iterable[str]) -> Dict[str, VenueClassification]:
        ids = list(dict.fromkeys(place_ids))
        if not ids:
            return {}
        async with self.session_factory() as session:
            result = await session.execute(
                select(VenueMetadata).where(VenueMetadata.place_id.in_(ids))
            )
            return {row.place_id: _to_classification(row) for row in result.scalars().all()}

    async def upsert(self, entry: VenueClassification) -> VenueClassification:
        """Insert or refresh an entry; never touches flag count, block or verification of an existing row"""
        async with self.session_factory() as session:
            insert = _insert_for(session)
            stmt = insert(VenueMetadata).values(**_row_values(entry))
            refreshed = {name: stmt.excluded[name] for name in REFRESH_COLUMNS}
            refreshed["nightlife_score"] = case(
                (VenueMetadata.is_blocked == True, 0),  # noqa: E712
                else_=stmt.excluded.nightlife_score,
            )
            refreshed["updated_at"] = stmt.excluded.updated_at
            stmt = stmt.on_conflict_do_update(index_elements=["place_id"], set_=refreshed)
            await session.execute(stmt)
            await session.commit()

            result = await session.execute(
                select(VenueMetadata).where(VenueMetadata.place_id == entry.place_id)
            )
            return _to_classification(result.scalar_one())

    async def ensure(self, entry: VenueClassification) -> VenueClassification:
        """Insert the entry unless the place already has one; return what is stored"""
        async with self.session_factory() as session:
            insert = _insert_for(session)
            stmt = insert(VenueMetadata).values(**_row_values(entry))
            stmt = stmt.on_conflict_do_nothing(index_elements=["place_id"])
            await session.execute(stmt)
            await session.commit()

            result = await session.execute(
                select(VenueMetadata).where(VenueMetadata.place_id == entry.place_id)
            )
            return _to_classification(result.scalar_one())

    async def set_verified(self, place_id: str, verified: Optional[bool]) -> Optional[VenueClassification]:
        return await self._update(place_id, community_verified=verified)

    async def set_blocked(self, place_id: str, blocked: bool) -> Optional[VenueClassification]:
        values = {"is_blocked": blocked}
        if blocked:
            values["nightlife_score"] = 0
        return await self._update(place_id, **values)

    async def _update(self, place_id: str, **values) -> Optional[VenueClassification]:
        async with self.session_factory() as session:
            await session.execute(
                update(VenueMetadata)
                .where(VenueMetadata.place_id == place_id)
                .values(updated_at=utcnow(), **values)
            )
            await session.commit()
            result = await session.execute(
                select(VenueMetadata).where(VenueMetadata.place_id == place_id)
            )
            row = result.scalar_one_or_none()
            return _to_classification(row) if row else None


class FlagRepository:
    """venue_flags table plus the counter kept on venue_metadata"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def record(
        self,
        place_id: str,
        reporter_id: str,
        flag_type: FlagType,
        note: Optional[str] = None,
        block_threshold: Optional[int] = None,
    ) -> Optional[int]:
        """Store the flag and bump the counter in one transaction; None when already reported"""
        async with self.session_factory() as session:
            session.add(VenueFlag(
                place_id=place_id,
                reporter_id=reporter_id,
                flag_type=FlagType(flag_type).value,
                note=note,
            ))
            try:
                await session.flush()
            except IntegrityError:
                await session.rollback()
                logger.info(f"[FLAGS] {reporter_id} already reported {place_id} as {flag_type}")
                return None

            await session.execute(_flag_increment(place_id, block_threshold))
            count = await _flag_count(session, place_id)
            await session.commit()
            return count

    async def remove(self, place_id: str, reporter_id: str, flag_type: FlagType) -> Optional[int]:
        """Delete the reporter's flag and decrement the counter; None when there was no such flag"""
        async with self.session_factory() as session:
            result = await session.execute(
                delete(VenueFlag).where(
                    VenueFlag.place_id == place_id,
                    VenueFlag.reporter_id == reporter_id,
                    VenueFlag.flag_type == FlagType(flag_type).value,
                )
            )
            if result.rowcount == 0:
                await session.rollback()
                return None

            await session.execute(_flag_decrement(place_id))
            count = await _flag_count(session, place_id)
            await session.commit()
            return count or 0

    async def counts(self, place_id: str) -> Dict[str, int]:
        counts = {flag_type.value: 0 for flag_type in FlagType}
        async with self.session_factory() as session:
            result = await session.execute(
                select(VenueFlag.flag_type, func.count(VenueFlag.id))
                .where(VenueFlag.place_id == place_id)
                .group_by(VenueFlag.flag_type)
            )
            for flag_type, count in result.all():
                counts[flag_type] = count
        return counts

    async def by_reporter(self, reporter_id: str) -> List[FlagResponse]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(VenueFlag)
                .where(VenueFlag.reporter_id == reporter_id)
                .order_by(VenueFlag.created_at.desc(), VenueFlag.id.desc())
            )
            return [FlagResponse.model_validate(f) for f in result.scalars().all()]


class ActivityRepository:
    """Read-only view of check-ins and vibe tags"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def presence_counts(self, place_ids: Iterable[str], since: datetime) -> Dict[str, Tuple[int, int]]:
        """place_id -> (present, open to meeting) among active check-ins newer than `since`"""
        ids = list(dict.fromkeys(place_ids))
        if not ids:
            return {}
        async with self.session_factory() as session:
            result = await session.execute(
                select(
                    CheckIn.place_id,
                    func.count(CheckIn.id),
                    func.sum(case((CheckIn.open_to_meeting == True, 1), else_=0)),  # noqa: E712
                )
                .where(and_(
                    CheckIn.place_id.in_(ids),
                    CheckIn.is_active == True,  # noqa: E712
                    CheckIn.checked_out_at.is_(None),
                    CheckIn.checked_in_at >= since,
                ))
                .group_by(CheckIn.place_id)
            )
            return {place_id: (present, open_count or 0) for place_id, present, open_count in result.all()}

    async def vibe_counts(self, place_ids: Iterable[str]) -> Dict[str, Dict[str, int]]:
        """place_id -> {vibe: count}"""
        ids = list(dict.fromkeys(place_ids))
        if not ids:
            return {}
        counts: Dict[str, Dict[str, int]] = {}
        async with self.session_factory() as session:
            result = await session.execute(
                select(VenueVibe.place_id, VenueVibe.vibe, func.count(VenueVibe.id))
                .where(VenueVibe.place_id.in_(ids))
                .group_by(VenueVibe.place_id, VenueVibe.vibe)
            )
            for place_id, vibe, count in result.all():
                counts.setdefault(place_id, {})[vibe] = count
        return counts
