"""
Google Places clients: nearby search for candidates, details for classification
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from shared.models.enums import ErrorKind
from ..models.errors import ProviderError
from ..schemas.places import PlaceDetails, PlaceDetailsResult
from ..schemas.venue import Venue, SearchResult
from ..utils.geo import distance_meters
from .category_filter import is_admissible

logger = logging.getLogger(__name__)

PLACES_BASE = "https://maps.googleapis.com/maps/api/place"
NEARBY_SEARCH_URL = f"{PLACES_BASE}/nearbysearch/json"
DETAILS_URL = f"{PLACES_BASE}/details/json"
PHOTO_URL = f"{PLACES_BASE}/photo"

MAX_PHOTOS = 5
PHOTO_MAX_WIDTH = 600
MAX_RADIUS_METERS = 50000  # provider hard limit

DEFAULT_CATEGORY_QUERIES = ("bar", "night_club", "restaurant")

DETAILS_FIELDS = ",".join([
    "place_id", "name", "types",
    "opening_hours",
    "reviews",
])

# Provider "status" values that mean failure
STATUS_ERRORS = {
    "REQUEST_DENIED": ErrorKind.UNAUTHORIZED,
    "OVER_QUERY_LIMIT": ErrorKind.RATE_LIMITED,
    "NOT_FOUND": ErrorKind.NOT_FOUND,
    "INVALID_REQUEST": ErrorKind.MALFORMED_RESPONSE,
    "UNKNOWN_ERROR": ErrorKind.UNAVAILABLE,
}


class PlacesApiClient:
    """Shared HTTP plumbing for the places endpoints"""

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 20.0,
        language: str = "pt-BR",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.language = language
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self):
        """Close HTTP client if we created it"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET a provider endpoint and map every failure onto a ProviderError"""
        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise ProviderError(ErrorKind.UNAVAILABLE, f"Places API unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise ProviderError(ErrorKind.UNAUTHORIZED, f"Places API rejected credentials ({response.status_code})")
        if response.status_code == 429:
            raise ProviderError(ErrorKind.RATE_LIMITED, "Places API rate limit exceeded")
        if response.status_code >= 500:
            raise ProviderError(ErrorKind.UNAVAILABLE, f"Places API error {response.status_code}")
        if response.status_code != 200:
            raise ProviderError(
                ErrorKind.MALFORMED_RESPONSE,
                f"Unexpected Places API status {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(ErrorKind.MALFORMED_RESPONSE, "Places API returned invalid JSON") from e
        if not isinstance(data, dict):
            raise ProviderError(ErrorKind.MALFORMED_RESPONSE, "Places API returned a non-object body")

        status = data.get("status")
        if status in ("OK", "ZERO_RESULTS"):
            return data
        kind = STATUS_ERRORS.get(status, ErrorKind.MALFORMED_RESPONSE)
        raise ProviderError(
            kind,
            data.get("error_message") or f"Places API status {status}",
            provider_status=status,
        )


class VenueSearchClient(PlacesApiClient):
    """
    Runs one nearby search per category query and merges the results.

    Raw results go through the category filter, get a client-side distance,
    are deduplicated by place id (first occurrence wins) and narrowed to
    venues that are explicitly open now. Unauthorized and rate-limit errors
    short-circuit without a partial list.
    """

    def __init__(self, *args, category_queries: Sequence[str] = DEFAULT_CATEGORY_QUERIES, **kwargs):
        super().__init__(*args, **kwargs)
        self.category_queries = tuple(category_queries)

    async def search(
        self,
        lat: float,
        lon: float,
        radius_meters: int,
        category_queries: Optional[Sequence[str]] = None,
    ) -> SearchResult:
        if not self.api_key:
            logger.warning("GOOGLE_PLACES_API_KEY not set, skipping venue search")
            return SearchResult(error=ErrorKind.CONFIGURATION, radius_meters=radius_meters)

        queries = tuple(category_queries) if category_queries else self.category_queries
        collected: List[Venue] = []

        for query in queries:
            try:
                raw_results = await self._nearby(lat, lon, radius_meters, query)
            except ProviderError as e:
                logger.error(f"[PLACES] search '{query}' at {radius_meters}m failed: {e.kind.value} - {e.message}")
                return SearchResult(error=e.kind, radius_meters=radius_meters)

            admitted = 0
            for raw in raw_results:
                venue = self._to_venue(raw, lat, lon)
                if venue is not None:
                    collected.append(venue)
                    admitted += 1
            logger.debug(f"[PLACES] '{query}' at {radius_meters}m: {len(raw_results)} raw, {admitted} admitted")

        venues = [v for v in dedupe_venues(collected) if v.open_now is True]
        venues.sort(key=lambda v: v.distance_meters)

        logger.info(f"[PLACES] {len(venues)} open venues within {radius_meters}m of ({lat:.4f}, {lon:.4f})")
        return SearchResult(venues=venues, radius_meters=radius_meters)

    async def _nearby(self, lat: float, lon: float, radius_meters: int, query: str) -> List[Dict[str, Any]]:
        params = {
            "location": f"{lat},{lon}",
            "radius": max(1, min(int(radius_meters), MAX_RADIUS_METERS)),
            "type": query,
            "language": self.language,
            "key": self.api_key,
        }
        data = await self._get_json(NEARBY_SEARCH_URL, params)
        results = data.get("results") or []
        if not isinstance(results, list):
            raise ProviderError(ErrorKind.MALFORMED_RESPONSE, "Nearby search 'results' is not a list")
        return results

    def _to_venue(self, raw: Any, user_lat: float, user_lon: float) -> Optional[Venue]:
        """Map one raw result to a Venue, or None when it is unusable or filtered out"""
        if not isinstance(raw, dict):
            return None

        place_id = raw.get("place_id")
        name = (raw.get("name") or "").strip()
        if not place_id or not name:
            return None

        location = (raw.get("geometry") or {}).get("location") or {}
        lat, lng = location.get("lat"), location.get("lng")
        if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
            return None

        tags = list(dict.fromkeys(t for t in (raw.get("types") or []) if isinstance(t, str)))
        if not is_admissible(tags, name):
            return None

        rating = raw.get("rating")
        price_level = raw.get("price_level")
        open_now = (raw.get("opening_hours") or {}).get("open_now")

        try:
            return Venue(
                id=place_id,
                name=name,
                address=raw.get("vicinity") or raw.get("formatted_address") or "",
                latitude=lat,
                longitude=lng,
                category_tags=tags,
                photo_urls=self._photo_urls(raw.get("photos") or []),
                rating=rating if isinstance(rating, (int, float)) and 0 <= rating <= 5 else None,
                price_level=price_level if isinstance(price_level, int) and 1 <= price_level <= 4 else None,
                open_now=open_now if isinstance(open_now, bool) else None,
                distance_meters=distance_meters(user_lat, user_lon, lat, lng),
            )
        except ValidationError as e:
            logger.debug(f"[PLACES] dropping malformed result {place_id}: {e}")
            return None

    def _photo_urls(self, photos: Iterable[Any]) -> List[str]:
        urls = []
        for photo in photos:
            if len(urls) >= MAX_PHOTOS:
                break
            reference = photo.get("photo_reference") if isinstance(photo, dict) else None
            if reference:
                query = urlencode({
                    "maxwidth": PHOTO_MAX_WIDTH,
                    "photo_reference": reference,
                    "key": self.api_key,
                })
                urls.append(f"{PHOTO_URL}?{query}")
        return urls


class PlaceDetailsClient(PlacesApiClient):
    """Fetches opening hours and reviews for one place"""

    async def fetch_details(self, place_id: str) -> PlaceDetails:
        if not self.api_key:
            raise ProviderError(ErrorKind.CONFIGURATION, "GOOGLE_PLACES_API_KEY not configured")

        params = {
            "place_id": place_id,
            "fields": DETAILS_FIELDS,
            "language": self.language,
            "key": self.api_key,
        }
        data = await self._get_json(DETAILS_URL, params)
        if data.get("status") == "ZERO_RESULTS":
            raise ProviderError(ErrorKind.NOT_FOUND, f"Place not found: {place_id}", provider_status="ZERO_RESULTS")

        try:
            result = PlaceDetailsResult.model_validate(data.get("result"))
        except ValidationError as e:
            raise ProviderError(ErrorKind.MALFORMED_RESPONSE, f"Malformed details for {place_id}: {e}") from e

        periods = result.opening_hours.periods if result.opening_hours else []
        return PlaceDetails(
            place_id=result.place_id or place_id,
            name=result.name or "",
            category_tags=result.types,
            hours_periods=[p.model_dump(exclude_none=True) for p in periods],
            review_texts=[r.text for r in result.reviews if r.text],
        )


def dedupe_venues(venues: Iterable[Venue]) -> List[Venue]:
    """Drop repeated place ids, keeping the first occurrence"""
    seen = set()
    unique = []
    for venue in venues:
        if venue.id in seen:
            continue
        seen.add(venue.id)
        unique.append(venue)
    return unique
