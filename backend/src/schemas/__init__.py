"""
Pydantic schemas for the API
"""

from .venue import (
    Venue, SearchResult, VenueClassification, VenueWithActivity,
    RankedVenue, DiscoveryResponse,
)
from .places import PlaceDetails
from .flag import FlagCreate, FlagResult, FlagResponse, FlagCounts, VerificationUpdate, BlockUpdate

__all__ = [
    'Venue', 'SearchResult', 'VenueClassification', 'VenueWithActivity',
    'RankedVenue', 'DiscoveryResponse', 'PlaceDetails',
    'FlagCreate', 'FlagResult', 'FlagResponse', 'FlagCounts',
    'VerificationUpdate', 'BlockUpdate',
]
