# backend/src/schemas/flag.py
from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator
from .base import BaseSchema
from shared.models.enums import ErrorKind, FlagType


class FlagCreate(BaseSchema):
    """Community report submission"""
    reporter_id: str = Field(..., min_length=1, max_length=255)
    flag_type: FlagType = Field(default=FlagType.NOT_NIGHTLIFE)
    note: Optional[str] = Field(None, max_length=500)

    @field_validator("note")
    @classmethod
    def strip_note(cls, v):
        if v is None:
            return None
        return v.strip() or None


class FlagResult(BaseSchema):
    """Outcome of a flag submission or removal"""
    recorded: bool
    error: Optional[ErrorKind] = None
    community_flag_count: Optional[int] = None


class FlagResponse(BaseSchema):
    """Stored flag"""
    id: int
    place_id: str
    reporter_id: str
    flag_type: FlagType
    note: Optional[str]
    created_at: datetime


class FlagCounts(BaseSchema):
    """Flags per type for one venue"""
    not_nightlife: int = 0
    closed: int = 0
    wrong_category: int = 0


class VerificationUpdate(BaseSchema):
    """Moderator decision on community verification (None resets to unknown)"""
    verified: Optional[bool] = None


class BlockUpdate(BaseSchema):
    """Moderator block switch"""
    blocked: bool
