# backend/src/schemas/venue.py
from datetime import datetime, timedelta
from typing import Any, List, Optional
from pydantic import Field
from .base import BaseSchema
from shared.models.base import as_utc
from shared.models.enums import ErrorKind


class Venue(BaseSchema):
    """One physical place as returned by the search stage"""
    id: str = Field(..., min_length=1)  # provider place id
    name: str
    address: str = ""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    category_tags: List[str] = Field(default_factory=list)
    photo_urls: List[str] = Field(default_factory=list)
    rating: Optional[float] = Field(None, ge=0, le=5)
    price_level: Optional[int] = Field(None, ge=1, le=4)
    open_now: Optional[bool] = None
    distance_meters: float = Field(0.0, ge=0)


class SearchResult(BaseSchema):
    """Candidates from one search, or the reason the search failed"""
    venues: List[Venue] = Field(default_factory=list)
    error: Optional[ErrorKind] = None
    radius_meters: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class VenueClassification(BaseSchema):
    """Cached nightlife judgement for a place id"""
    place_id: str
    closes_late_on_weekend: bool = False
    opens_in_evening: bool = False
    review_keywords_positive: int = Field(0, ge=0)
    review_keywords_negative: int = Field(0, ge=0)
    community_verified: Optional[bool] = None
    is_blocked: bool = False
    community_flag_count: int = Field(0, ge=0)
    nightlife_score: int = Field(0, ge=0, le=100)
    last_refreshed_at: Optional[datetime] = None
    opening_hours: Optional[Any] = None

    @property
    def is_cold(self) -> bool:
        """Never fetched from the details API; scored from categories only"""
        return self.last_refreshed_at is None

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        if self.is_cold:
            return False
        return now - as_utc(self.last_refreshed_at) < ttl

    def is_servable(self, now: datetime, ttl: timedelta) -> bool:
        """Blocked entries are terminal and never refreshed"""
        return self.is_blocked or self.is_fresh(now, ttl)


class VenueWithActivity(Venue):
    """Venue joined with live presence counts"""
    present_count: int = Field(0, ge=0)
    open_to_meeting_count: int = Field(0, ge=0)
    positive_vibe_count: int = Field(0, ge=0)
    top_vibes: List[str] = Field(default_factory=list)


class RankedVenue(VenueWithActivity):
    """Venue ready for display, ordered by dating score"""
    nightlife_score: int = Field(0, ge=0, le=100)
    nightlife_label: str = ""
    dating_score: int = 0
    dating_label: str = ""
    distance_label: str = ""


class DiscoveryResponse(BaseSchema):
    """Ranked nearby venues"""
    venues: List[RankedVenue] = Field(default_factory=list)
    radius_meters: Optional[int] = None
    error: Optional[ErrorKind] = None
    from_cache: bool = False
