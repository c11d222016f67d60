"""
Dating score: how good a venue is for meeting people right now.

Unbounded on purpose; ranking uses the raw sum.
    category      0..100
    activity      0..100  (20 per person open to meeting)
    vibes         0..50   (10 per positive vibe tag)
    rating        0..20   (10 when unrated)
    distance    -30..0    (3 per km)
"""

from typing import Iterable, List, Optional, Sequence, TypeVar

from ..utils.geo import round_half_up
from .venue_type_scores import DATING_TYPE_SCORES, type_score

NEUTRAL_RATING_SCORE = 10

T = TypeVar("T")


def score(
    category_tags: Iterable[str],
    rating: Optional[float],
    price_level: Optional[int],
    distance_meters: float,
    open_to_meeting_count: int,
    positive_vibe_count: int,
) -> int:
    # price_level is accepted for callers but does not move the score
    category_term = type_score(category_tags, DATING_TYPE_SCORES)
    activity_term = min(100, 20 * open_to_meeting_count)
    vibe_term = min(50, 10 * positive_vibe_count)
    rating_term = round_half_up(20 * rating / 5) if rating is not None else NEUTRAL_RATING_SCORE
    distance_penalty = min(30, round_half_up(3 * distance_meters / 1000))
    return category_term + activity_term + vibe_term + rating_term - distance_penalty


def dating_score_label(value: int) -> str:
    if value >= 200:
        return "Excelente para conhecer pessoas"
    if value >= 150:
        return "Otimo para encontros"
    if value >= 100:
        return "Bom para socializar"
    if value >= 50:
        return "Ambiente casual"
    return "Pode funcionar"


def sort_by_dating_score(venues: Sequence[T]) -> List[T]:
    """Highest score first; ties keep their incoming (distance) order"""
    return sorted(venues, key=lambda v: getattr(v, "dating_score", 0) or 0, reverse=True)
