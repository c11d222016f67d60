"""
Admission filter that runs before any scoring work is spent on a venue
"""

import re
from typing import Iterable, Sequence, Pattern

from .venue_type_scores import NIGHTLIFE_TYPE_SCORES, UNKNOWN_TYPE_SCORE

# A single one of these tags disqualifies the venue
BLACKLISTED_TYPES = frozenset({
    # Beauty and health
    "beauty_salon", "hair_care", "spa", "gym", "physiotherapist",
    "doctor", "dentist", "hospital", "pharmacy", "veterinary_care",
    # Finance and public services
    "bank", "atm", "finance", "post_office", "police", "school", "university",
    "library", "local_government_office",
    # Car and household services
    "car_repair", "car_wash", "laundry", "storage", "gas_station",
    # Retail
    "store", "clothing_store", "home_goods_store", "electronics_store",
    "furniture_store", "hardware_store", "jewelry_store", "pet_store",
    "shoe_store", "shopping_mall", "department_store", "supermarket",
    "grocery_store", "convenience_store",
    # Fast food
    "fast_food_restaurant", "meal_takeaway", "meal_delivery",
    # Lodging
    "lodging", "motel", "hotel", "hostel", "campground", "rv_park", "resort",
})

# Chains and local business-type words (pt-BR) that never mean a night out
BLACKLIST_NAME_PATTERNS: Sequence[Pattern[str]] = tuple(re.compile(p, re.I) for p in (
    r"mcdonalds?", r"burger king", r"subway", r"kfc", r"wendy'?s",
    r"taco bell", r"pizza hut", r"domino'?s", r"applebee'?s",
    r"chili'?s", r"outback", r"olive garden", r"dennys?", r"ihop",
    r"tatuagem", r"tattoo", r"sobrancelha", r"maquiagem", r"barbearia",
    r"barber", r"cabeleireir[oa]", r"hair", r"dep[óo]sito", r"g[áa]s",
    r"mercado", r"drogaria", r"farm[áa]cia", r"est[ée]tica", r"banco",
    r"cl[íi]nica", r"oficina", r"mecanic[ao]", r"lava ?jato",
    r"material de constru[çc][ãa]o", r"hotel", r"pousada", r"motel",
    r"resort", r"hostel",
))


def has_blacklisted_type(category_tags: Iterable[str]) -> bool:
    return any(tag in BLACKLISTED_TYPES for tag in category_tags)


def has_blacklisted_name(name: str) -> bool:
    return any(pattern.search(name or "") for pattern in BLACKLIST_NAME_PATTERNS)


def is_admissible(category_tags: Sequence[str], name: str) -> bool:
    """Whether a raw search result is worth turning into a venue"""
    if has_blacklisted_type(category_tags):
        return False
    if has_blacklisted_name(name):
        return False
    return any(
        NIGHTLIFE_TYPE_SCORES.get(tag, UNKNOWN_TYPE_SCORE) > 0
        for tag in category_tags
    )
