# shared/models/enums.py
from enum import Enum


class ErrorKind(str, Enum):
    """Typed failure outcomes surfaced to callers"""
    CONFIGURATION = "configuration"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    UNAVAILABLE = "unavailable"
    ALREADY_REPORTED = "already_reported"
    NOT_FOUND = "not_found"


class FlagType(str, Enum):
    """Community report types"""
    NOT_NIGHTLIFE = "not_nightlife"
    CLOSED = "closed"
    WRONG_CATEGORY = "wrong_category"


class VibeType(str, Enum):
    """Vibe tags users leave after checking out of a venue"""
    GOOD_FOR_DATING = "good_for_dating"
    SINGLES_FRIENDLY = "singles_friendly"
    GREAT_ATMOSPHERE = "great_atmosphere"
    EASY_CONVERSATION = "easy_conversation"
    INTIMATE_SETTING = "intimate_setting"
    UPSCALE_CROWD = "upscale_crowd"
    CASUAL_VIBES = "casual_vibes"


# Every vibe on offer is a dating-positive tag
POSITIVE_VIBES = frozenset(VibeType)
