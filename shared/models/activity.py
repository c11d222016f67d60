# shared/models/activity.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Index, UniqueConstraint
from .base import Base, utcnow


class CheckIn(Base):
    """Presence of a user at a venue; written by the check-in flow, read here"""
    __tablename__ = "check_ins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    place_id = Column(String(255), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    open_to_meeting = Column(Boolean, default=False, nullable=False)
    checked_in_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_check_in_place_active', 'place_id', 'is_active', 'checked_in_at'),
    )

    def __repr__(self):
        return f"<CheckIn(user={self.user_id}, place_id={self.place_id}, active={self.is_active})>"


class VenueVibe(Base):
    """Vibe tag left by a user for a venue"""
    __tablename__ = "venue_vibes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    place_id = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=False)
    vibe = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('place_id', 'user_id', 'vibe', name='uq_venue_vibe_user'),
    )
