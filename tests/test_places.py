"""
Places clients against httpx.MockTransport
"""
import json

import httpx
import pytest

from backend.src.models.errors import ProviderError, http_status_for
from backend.src.services.places import VenueSearchClient, PlaceDetailsClient
from shared.models.enums import ErrorKind

from conftest import USER_LAT, USER_LON, place_result


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def nearby_handler(results_by_type, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(dict(request.url.params))
        results = results_by_type.get(request.url.params["type"], [])
        status = "OK" if results else "ZERO_RESULTS"
        return httpx.Response(200, json={"status": status, "results": results})
    return handler


class TestVenueSearchClient:

    @pytest.mark.asyncio
    async def test_missing_key_short_circuits_without_network(self):
        calls = []
        client = VenueSearchClient(None, client=mock_client(nearby_handler({}, calls)))

        result = await client.search(USER_LAT, USER_LON, 2000)

        assert result.error == ErrorKind.CONFIGURATION
        assert result.venues == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_one_query_per_category(self):
        calls = []
        client = VenueSearchClient("k", client=mock_client(nearby_handler({}, calls)))

        await client.search(USER_LAT, USER_LON, 5000)

        assert [c["type"] for c in calls] == ["bar", "night_club", "restaurant"]
        assert all(c["radius"] == "5000" for c in calls)
        assert calls[0]["location"] == f"{USER_LAT},{USER_LON}"

    @pytest.mark.asyncio
    async def test_duplicates_across_queries_collapse(self):
        club = place_result("p1", "Club Noir", -22.2220, -54.8060, types=["night_club", "bar"])
        results = {
            "bar": [club],
            "night_club": [dict(club, name="Club Noir (duplicate)")],
        }
        client = VenueSearchClient("k", client=mock_client(nearby_handler(results)))

        result = await client.search(USER_LAT, USER_LON, 2000)

        assert result.ok
        assert [v.id for v in result.venues] == ["p1"]
        assert result.venues[0].name == "Club Noir"

    @pytest.mark.asyncio
    async def test_filters_closed_and_blacklisted_and_sorts_by_distance(self):
        results = {
            "bar": [
                place_result("far", "Pub Distante", -22.2400, -54.8060),
                place_result("near", "Lounge Azul", -22.2215, -54.8060, types=["bar", "lounge"]),
                place_result("closed", "Noite Fechada", -22.2212, -54.8060, open_now=False),
                place_result("unknown", "Sem Horario", -22.2212, -54.8060, opening_hours={}),
                place_result("pharm", "Noite Remedios", -22.2212, -54.8060, types=["bar", "pharmacy"]),
                place_result("chain", "Burger King", -22.2212, -54.8060),
            ],
        }
        client = VenueSearchClient("k", client=mock_client(nearby_handler(results)))

        result = await client.search(USER_LAT, USER_LON, 5000)

        assert [v.id for v in result.venues] == ["near", "far"]
        assert result.venues[0].distance_meters < result.venues[1].distance_meters
        assert result.venues[0].distance_meters == pytest.approx(55.6, abs=1.0)

    @pytest.mark.asyncio
    async def test_maps_optional_fields(self):
        raw = place_result(
            "p1", "Club Noir", -22.2220, -54.8060,
            rating=4.6, price_level=0,
            photos=[{"photo_reference": "ref-1"}, {"photo_reference": "ref-2"}],
        )
        client = VenueSearchClient("k", client=mock_client(nearby_handler({"bar": [raw]})))

        venue = (await client.search(USER_LAT, USER_LON, 2000)).venues[0]

        assert venue.rating == 4.6
        assert venue.price_level is None
        assert venue.address == "Rua Club Noir, 100"
        assert len(venue.photo_urls) == 2
        assert "photo_reference=ref-1" in venue.photo_urls[0]
        assert "maxwidth=600" in venue.photo_urls[0]

    @pytest.mark.asyncio
    async def test_zero_results_is_empty_not_error(self):
        client = VenueSearchClient("k", client=mock_client(nearby_handler({})))

        result = await client.search(USER_LAT, USER_LON, 2000)

        assert result.ok
        assert result.venues == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response,kind", [
        (httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"}), ErrorKind.UNAUTHORIZED),
        (httpx.Response(200, json={"status": "OVER_QUERY_LIMIT"}), ErrorKind.RATE_LIMITED),
        (httpx.Response(403, text="forbidden"), ErrorKind.UNAUTHORIZED),
        (httpx.Response(429, text="slow down"), ErrorKind.RATE_LIMITED),
        (httpx.Response(200, text="<html>not json</html>"), ErrorKind.MALFORMED_RESPONSE),
        (httpx.Response(503, text="down"), ErrorKind.UNAVAILABLE),
    ])
    async def test_provider_errors_short_circuit(self, response, kind):
        calls = []

        def handler(request):
            calls.append(request)
            return response

        client = VenueSearchClient("k", client=mock_client(handler))

        result = await client.search(USER_LAT, USER_LON, 2000)

        assert result.error == kind
        assert result.venues == []
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_failure_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = VenueSearchClient("k", client=mock_client(handler))

        result = await client.search(USER_LAT, USER_LON, 2000)

        assert result.error == ErrorKind.UNAVAILABLE


class TestPlaceDetailsClient:

    @pytest.mark.asyncio
    async def test_parses_hours_and_reviews(self):
        payload = {
            "status": "OK",
            "result": {
                "place_id": "p1",
                "name": "Club Noir",
                "types": ["night_club"],
                "opening_hours": {"periods": [{"open": {"day": 5, "time": "2200"}}]},
                "reviews": [{"text": "Balada top"}, {"rating": 5}],
            },
        }
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, content=json.dumps(payload))

        client = PlaceDetailsClient("k", client=mock_client(handler))

        details = await client.fetch_details("p1")

        assert seen["place_id"] == "p1"
        assert seen["language"] == "pt-BR"
        assert "opening_hours" in seen["fields"]
        assert details.hours_periods == [{"open": {"day": 5, "time": "2200"}}]
        assert details.review_texts == ["Balada top"]
        assert details.category_tags == ["night_club"]

    @pytest.mark.asyncio
    async def test_not_found(self):
        client = PlaceDetailsClient("k", client=mock_client(
            lambda request: httpx.Response(200, json={"status": "NOT_FOUND"})
        ))

        with pytest.raises(ProviderError) as exc_info:
            await client.fetch_details("gone")

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert http_status_for(exc_info.value.kind) == 404

    @pytest.mark.asyncio
    async def test_missing_key(self):
        client = PlaceDetailsClient("", client=mock_client(lambda request: httpx.Response(500)))

        with pytest.raises(ProviderError) as exc_info:
            await client.fetch_details("p1")

        assert exc_info.value.kind == ErrorKind.CONFIGURATION

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [
        None,
        {"place_id": "p1", "opening_hours": "aberto"},
        {"place_id": "p1", "reviews": 3},
        {"place_id": "p1", "opening_hours": {"periods": [{"open": "2200"}]}},
    ])
    async def test_malformed_result(self, result):
        client = PlaceDetailsClient("k", client=mock_client(
            lambda request: httpx.Response(200, json={"status": "OK", "result": result})
        ))

        with pytest.raises(ProviderError) as exc_info:
            await client.fetch_details("p1")

        assert exc_info.value.kind == ErrorKind.MALFORMED_RESPONSE
