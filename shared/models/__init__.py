# shared/models/__init__.py
from .base import Base, TimestampMixin
from .venue import VenueMetadata, VenueFlag
from .activity import CheckIn, VenueVibe
from .enums import ErrorKind, FlagType, VibeType, POSITIVE_VIBES

__all__ = [
    'Base',
    'TimestampMixin',
    'VenueMetadata',
    'VenueFlag',
    'CheckIn',
    'VenueVibe',
    'ErrorKind',
    'FlagType',
    'VibeType',
    'POSITIVE_VIBES',
]
