"""
Category score tables shared by the filter, the classifier and the dating score
"""

from typing import Dict, Iterable

# Tags missing from a table still count a little so unknown categories are not dropped
UNKNOWN_TYPE_SCORE = 20

# How strongly a category signals nightlife (classifier and admission filter)
NIGHTLIFE_TYPE_SCORES: Dict[str, int] = {
    "night_club": 100,
    "dance_club": 100,
    "cocktail_bar": 95,
    "wine_bar": 90,
    "lounge": 90,
    "rooftop_bar": 85,
    "bar": 70,
    "pub": 60,
    "gastropub": 55,
    "beer_garden": 50,
    "hookah_bar": 50,
    "jazz_club": 50,
    "karaoke": 45,
    "restaurant": 30,
    "cafe": 20,
}

# How dating-friendly a category is (higher = better for meeting people)
DATING_TYPE_SCORES: Dict[str, int] = {
    # Top tier - intimate, sophisticated
    "cocktail_bar": 100,
    "wine_bar": 100,
    "speakeasy": 100,
    "rooftop_bar": 95,
    "lounge": 90,
    # High tier - upscale dining
    "bistro": 80,
    "gastropub": 75,
    "jazz_club": 75,
    # Mid tier
    "bar": 60,
    "night_club": 60,
    "dance_club": 60,
    "beer_garden": 55,
    "hookah_bar": 50,
    # Casual
    "restaurant": 40,
    "pub": 30,
    "brewery": 30,
    "tavern": 30,
    "dive_bar": 25,
    # Entertainment, context dependent
    "karaoke": 45,
    "comedy_club": 50,
    "music_venue": 45,
    "concert_hall": 40,
    "nightlife": 50,
}


def type_score(tags: Iterable[str], table: Dict[str, int]) -> int:
    """Best score among the tags; an empty tag list scores the unknown default"""
    scores = [table.get(tag, UNKNOWN_TYPE_SCORE) for tag in tags]
    return max(scores, default=UNKNOWN_TYPE_SCORE)
