# Re-export the shared models
from shared.models import Base, VenueMetadata, VenueFlag, CheckIn, VenueVibe
from shared.models.enums import ErrorKind, FlagType, VibeType
from .errors import ProviderError, http_status_for

__all__ = [
    'Base',
    'VenueMetadata',
    'VenueFlag',
    'CheckIn',
    'VenueVibe',
    'ErrorKind',
    'FlagType',
    'VibeType',
    'ProviderError',
    'http_status_for',
]
