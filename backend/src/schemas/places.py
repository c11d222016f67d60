# backend/src/schemas/places.py
from typing import Any, Dict, List, Optional
from pydantic import Field
from .base import BaseSchema


class HoursPoint(BaseSchema):
    """Day of week (0 = Sunday) and "HHMM" time"""
    day: Optional[int] = None
    time: Optional[str] = None


class HoursPeriod(BaseSchema):
    open: Optional[HoursPoint] = None
    close: Optional[HoursPoint] = None


class OpeningHours(BaseSchema):
    periods: List[HoursPeriod] = Field(default_factory=list)


class PlaceReview(BaseSchema):
    text: Optional[str] = None


class PlaceDetailsResult(BaseSchema):
    """The `result` object of a details response"""
    place_id: Optional[str] = None
    name: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    opening_hours: Optional[OpeningHours] = None
    reviews: List[PlaceReview] = Field(default_factory=list)


class PlaceDetails(BaseSchema):
    """The parts of a details response the classifier needs"""
    place_id: str
    name: str = ""
    category_tags: List[str] = Field(default_factory=list)
    hours_periods: List[Dict[str, Any]] = Field(default_factory=list)
    review_texts: List[str] = Field(default_factory=list)
