"""
Geo helpers: great-circle distance and display formatting
"""

import math

EARTH_RADIUS_METERS = 6_371_000


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two WGS84 points, in meters"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def geo_cell(lat: float, lon: float, precision: int = 2) -> str:
    """Grid cell key; two decimals is roughly a 1.1 km square"""
    return f"{round(lat, precision):.{precision}f}:{round(lon, precision):.{precision}f}"


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round_half_up(meters)} m de você"
    return f"{meters / 1000:.1f} km de você"


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's rounding)"""
    return math.floor(value + 0.5)
