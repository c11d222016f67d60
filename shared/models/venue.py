# shared/models/venue.py
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, JSON, Index, UniqueConstraint
)
from .base import Base, TimestampMixin, utcnow
from .enums import FlagType


class VenueMetadata(Base, TimestampMixin):
    """Cached nightlife classification, one row per provider place id"""
    __tablename__ = "venue_metadata"

    id = Column(Integer, primary_key=True, autoincrement=True)
    place_id = Column(String(255), unique=True, nullable=False, index=True)
    opening_hours = Column(JSON, nullable=True)  # raw provider periods

    # Signals
    closes_late_on_weekend = Column(Boolean, default=False, nullable=False)
    opens_in_evening = Column(Boolean, default=False, nullable=False)
    review_keywords_positive = Column(Integer, default=0, nullable=False)
    review_keywords_negative = Column(Integer, default=0, nullable=False)

    # Community curation
    community_verified = Column(Boolean, nullable=True)  # None = unknown
    is_blocked = Column(Boolean, default=False, nullable=False)
    community_flag_count = Column(Integer, default=0, nullable=False)

    nightlife_score = Column(Integer, default=0, nullable=False)  # 0-100
    last_refreshed_at = Column(DateTime(timezone=True), nullable=True)  # None = never fetched

    __table_args__ = (
        Index('idx_venue_metadata_refresh', 'is_blocked', 'last_refreshed_at'),
    )

    def __repr__(self):
        return f"<VenueMetadata(place_id={self.place_id}, score={self.nightlife_score}, blocked={self.is_blocked})>"


class VenueFlag(Base):
    """A community report against a venue"""
    __tablename__ = "venue_flags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    place_id = Column(String(255), nullable=False, index=True)
    reporter_id = Column(String(255), nullable=False, index=True)
    flag_type = Column(String(32), default=FlagType.NOT_NIGHTLIFE, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('place_id', 'reporter_id', 'flag_type', name='uq_venue_flag_reporter'),
    )

    def __repr__(self):
        return f"<VenueFlag(place_id={self.place_id}, type={self.flag_type})>"
