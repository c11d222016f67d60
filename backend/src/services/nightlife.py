"""
Nightlife classification: decides whether a place is a real night venue
or a generic search hit (restaurant, salon, pharmacy...).

Signals, in order of precedence:
    blocked by moderation -> 0
    curated verified venue -> fixed score minus the flag penalty
    otherwise a weighted sum of category, opening hours, review keywords,
    community verification and community flags, clamped to 0..100
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import Field

from ..schemas.base import BaseSchema
from ..schemas.venue import VenueClassification
from ..utils.geo import round_half_up
from .venue_type_scores import NIGHTLIFE_TYPE_SCORES, type_score
from .verified_venues import VerifiedVenueRegistry

logger = logging.getLogger(__name__)

NIGHTLIFE_SCORE_THRESHOLD = 40

# Google numbering: 0 = Sunday
FRIDAY, SATURDAY = 5, 6
WEEKEND_DAYS = (FRIDAY, SATURDAY)
EVENING_HOUR = 18
LATE_CLOSE_HOUR = 23

CATEGORY_WEIGHT = 0.25
LATE_WEEKEND_POINTS = 30
EVENING_POINTS = 15
KEYWORD_POINTS = 3
MAX_KEYWORD_POINTS = 15
VERIFIED_POINTS = 20
FLAG_POINTS = 2
MAX_FLAG_PENALTY = 10

NIGHTLIFE_POSITIVE_KEYWORDS = (
    # Portuguese
    "balada", "drinks", "musica", "música", "dj", "dança", "danca", "noite",
    "happy hour", "cerveja", "cocktail", "coquetel", "boate", "pista", "festa",
    "chopinho", "chopp", "bar", "pub", "danceteria", "pagode", "sertanejo",
    "funk", "eletronico", "eletrônico",
    # English
    "nightlife", "clubbing", "party", "dancing", "live music", "nightclub",
)

NIGHTLIFE_NEGATIVE_KEYWORDS = (
    # Portuguese
    "familia", "família", "criancas", "crianças", "almoco", "almoço",
    "cafe da manha", "café da manhã", "trabalho", "reuniao", "reunião",
    "infantil", "kids", "brinquedo", "playground", "almoco executivo",
    "almoço executivo", "self-service", "buffet", "por quilo",
    # English
    "family", "children", "kids friendly", "business lunch", "breakfast",
)


class ClassificationInputs(BaseSchema):
    """Everything the classifier looks at for one place"""
    place_id: str
    name: str = ""
    category_tags: List[str] = Field(default_factory=list)
    hours_periods: List[Dict[str, Any]] = Field(default_factory=list)
    review_texts: List[str] = Field(default_factory=list)
    prior: Optional[VenueClassification] = None


def _hour(time_value: Any) -> int:
    """Hour from a provider "HHMM" string; garbage reads as midnight"""
    try:
        return int(str(time_value or "0000")) // 100
    except ValueError:
        return 0


def analyze_operating_hours(periods: Optional[Iterable[Dict[str, Any]]]) -> Tuple[bool, bool]:
    """Return (closes_late_on_weekend, opens_in_evening); malformed periods are skipped"""
    closes_late_on_weekend = False
    opens_in_evening = False

    for period in periods or []:
        if not isinstance(period, dict):
            continue
        opening = period.get("open") or {}
        closing = period.get("close")
        if not isinstance(opening, dict) or (closing is not None and not isinstance(closing, dict)):
            continue

        open_day = opening.get("day")
        if _hour(opening.get("time")) >= EVENING_HOUR:
            opens_in_evening = True

        if open_day not in WEEKEND_DAYS:
            continue
        if not closing:
            # No closing time means open around the clock
            closes_late_on_weekend = True
        elif _hour(closing.get("time")) >= LATE_CLOSE_HOUR or closing.get("day") != open_day:
            closes_late_on_weekend = True

    return closes_late_on_weekend, opens_in_evening


def _first_hit(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def analyze_review_keywords(review_texts: Optional[Iterable[str]]) -> Tuple[int, int]:
    """Return (positive, negative) hits; each review counts at most once per polarity"""
    positive = negative = 0
    for review in review_texts or []:
        text = (review or "").lower()
        if _first_hit(text, NIGHTLIFE_POSITIVE_KEYWORDS):
            positive += 1
        if _first_hit(text, NIGHTLIFE_NEGATIVE_KEYWORDS):
            negative += 1
    return positive, negative


def flag_penalty(flag_count: int) -> int:
    return min(MAX_FLAG_PENALTY, FLAG_POINTS * max(0, flag_count))


def weighted_score(
    category_tags: Iterable[str],
    closes_late_on_weekend: bool,
    opens_in_evening: bool,
    positive_hits: int,
    negative_hits: int,
    community_verified: Optional[bool],
    flag_count: int,
) -> int:
    score = round_half_up(CATEGORY_WEIGHT * type_score(category_tags, NIGHTLIFE_TYPE_SCORES))

    if closes_late_on_weekend:
        score += LATE_WEEKEND_POINTS
    elif opens_in_evening:
        score += EVENING_POINTS

    score += min(MAX_KEYWORD_POINTS, max(0, KEYWORD_POINTS * (positive_hits - negative_hits)))

    # Verification helps; non-verification never penalizes
    if community_verified is True:
        score += VERIFIED_POINTS

    score -= flag_penalty(flag_count)
    return max(0, min(100, score))


class NightlifeClassifier:
    """Scores places 0..100 for nightlife suitability"""

    def __init__(self, registry: Optional[VerifiedVenueRegistry] = None):
        self.registry = registry or VerifiedVenueRegistry()

    def classify(self, inputs: ClassificationInputs) -> int:
        return self.evaluate(inputs).nightlife_score

    def evaluate(self, inputs: ClassificationInputs, refreshed_at: Optional[datetime] = None) -> VenueClassification:
        """Full classification entry: signals plus score, community fields carried from the prior entry"""
        prior = inputs.prior
        community_verified = prior.community_verified if prior else None
        flag_count = prior.community_flag_count if prior else 0
        is_blocked = prior.is_blocked if prior else False

        closes_late, opens_evening = analyze_operating_hours(inputs.hours_periods)
        positive, negative = analyze_review_keywords(inputs.review_texts)

        if is_blocked:
            score = 0
        else:
            override = self.registry.find(inputs.name, inputs.place_id)
            if override is not None:
                score = max(0, override.score - flag_penalty(flag_count))
                logger.debug(f"[NIGHTLIFE] verified override for {inputs.place_id} ({inputs.name}): {score}")
            else:
                score = weighted_score(
                    inputs.category_tags, closes_late, opens_evening,
                    positive, negative, community_verified, flag_count,
                )

        return VenueClassification(
            place_id=inputs.place_id,
            closes_late_on_weekend=closes_late,
            opens_in_evening=opens_evening,
            review_keywords_positive=positive,
            review_keywords_negative=negative,
            community_verified=community_verified,
            is_blocked=is_blocked,
            community_flag_count=flag_count,
            nightlife_score=score,
            last_refreshed_at=refreshed_at,
            opening_hours=inputs.hours_periods or None,
        )


def passes_nightlife_filter(
    classification: Optional[VenueClassification],
    threshold: int = NIGHTLIFE_SCORE_THRESHOLD,
) -> bool:
    """Unclassified venues pass; blocked or low-scoring ones do not"""
    if classification is None:
        return True
    if classification.is_blocked:
        return False
    return classification.nightlife_score >= threshold


def nightlife_score_label(score: int) -> str:
    if score >= 80:
        return "Vida noturna"
    if score >= 60:
        return "Bar/Balada"
    if score >= 40:
        return "Noite casual"
    if score >= 20:
        return "Pode funcionar"
    return "Provavelmente nao e balada"
