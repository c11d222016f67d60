"""
Curated registry of venues known to be nightlife spots.

Matches bypass the computed nightlife score entirely. A place id match wins
over a name match. Name patterns are either compiled regular expressions
(searched anywhere in the name) or plain strings (whole-name, case-insensitive).
"""

import re
from typing import Iterable, Optional, Pattern, Sequence, Union

from pydantic import ConfigDict

from ..schemas.base import BaseSchema

DEFAULT_VERIFIED_SCORE = 100


class VerifiedOverride(BaseSchema):
    model_config = ConfigDict(frozen=True)

    name_pattern: Union[str, Pattern[str]]
    place_id: Optional[str] = None
    score: int = DEFAULT_VERIFIED_SCORE
    note: str = ""

    def matches_name(self, name: str) -> bool:
        normalized = name.strip()
        if isinstance(self.name_pattern, str):
            return normalized.lower() == self.name_pattern.lower()
        return self.name_pattern.search(normalized) is not None


# Dourados, MS
VERIFIED_VENUES: Sequence[VerifiedOverride] = (
    # Bars and botequins
    VerifiedOverride(name_pattern=re.compile(r"bar[aã]o\s*(botequim)?", re.I), note="Barão Botequim - popular bar"),
    VerifiedOverride(name_pattern=re.compile(r"bar\s*mattos", re.I), note="Bar Mattos - traditional bar"),
    VerifiedOverride(name_pattern=re.compile(r"bar\s*do\s*lau", re.I), note="Bar do Lau - local favorite"),
    VerifiedOverride(name_pattern=re.compile(r"vibes\s*(bar)?", re.I), note="Vibes Bar - nightlife spot"),
    VerifiedOverride(name_pattern=re.compile(r"dona\s*olinda", re.I), note="Dona Olinda Botequim"),
    VerifiedOverride(name_pattern=re.compile(r"eden\s*beer", re.I), note="Eden Beer - beer-focused bar"),
    VerifiedOverride(name_pattern=re.compile(r"boutique'?i?n\s*chopp", re.I), score=95, note="Boutique'in Chopp"),
    # Conveniências that turn into bars at night
    VerifiedOverride(name_pattern=re.compile(r"big\s*conveni[eê]ncia", re.I), score=85, note="Big Conveniência"),
    VerifiedOverride(name_pattern=re.compile(r"two\.?\s*conveni[eê]ncia", re.I), score=85, note="Two.Conveniência"),
)


class VerifiedVenueRegistry:
    """Read-only lookup over the curated override list"""

    def __init__(self, overrides: Iterable[VerifiedOverride] = VERIFIED_VENUES):
        self._overrides = tuple(overrides)

    def __len__(self) -> int:
        return len(self._overrides)

    def find(self, name: str, place_id: Optional[str] = None) -> Optional[VerifiedOverride]:
        if place_id:
            for override in self._overrides:
                if override.place_id == place_id:
                    return override
        if name:
            for override in self._overrides:
                if override.matches_name(name):
                    return override
        return None
