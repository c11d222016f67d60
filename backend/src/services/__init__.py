# backend/src/services/__init__.py
"""
Discovery pipeline services
"""

from .places import VenueSearchClient, PlaceDetailsClient
from .radius import RadiusExpansionController
from .nightlife import NightlifeClassifier
from .metadata_cache import MetadataCache
from .enrichment import ActivityEnrichment
from .cache import CacheService, SearchResultCache
from .discovery import DiscoveryService
from .verified_venues import VerifiedVenueRegistry

__all__ = [
    'VenueSearchClient',
    'PlaceDetailsClient',
    'RadiusExpansionController',
    'NightlifeClassifier',
    'MetadataCache',
    'ActivityEnrichment',
    'CacheService',
    'SearchResultCache',
    'DiscoveryService',
    'VerifiedVenueRegistry',
]
