"""
MetadataCache against a real (SQLite) database with a mocked details client
"""
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio

from backend.src.models.errors import ProviderError
from backend.src.schemas.venue import VenueClassification
from backend.src.services.metadata_cache import MetadataCache
from backend.src.services.nightlife import NightlifeClassifier
from backend.src.services.places import PlaceDetailsClient
from backend.src.schemas.places import PlaceDetails
from backend.src.services.repositories import MetadataRepository, FlagRepository
from shared.models.base import as_utc
from shared.models.enums import ErrorKind, FlagType

from conftest import NOW, make_venue, weekend_late_periods


def late_night_details(place_id):
    return PlaceDetails(
        place_id=place_id,
        name="Club Noir",
        category_tags=["night_club"],
        hours_periods=weekend_late_periods(),
        review_texts=["balada boa", "dj top"],
    )


@pytest.fixture
def details_client():
    client = AsyncMock()
    client.fetch_details.side_effect = late_night_details
    return client


@pytest_asyncio.fixture
async def repositories(session_factory):
    return MetadataRepository(session_factory), FlagRepository(session_factory)


@pytest.fixture
def cache(repositories, details_client):
    metadata, flags = repositories
    return MetadataCache(
        metadata, details_client, NightlifeClassifier(),
        flags=flags, ttl=timedelta(days=7), batch_size=5, batch_delay=0,
        flag_block_threshold=3, clock=lambda: NOW,
    )


async def store(repositories, **fields):
    metadata, _ = repositories
    return await metadata.upsert(VenueClassification(**fields))


class TestGetOrRefresh:

    @pytest.mark.asyncio
    async def test_fresh_entry_served_without_fetch(self, cache, repositories, details_client):
        await store(repositories, place_id="p1", nightlife_score=77, last_refreshed_at=NOW - timedelta(days=1))

        entry = await cache.get_or_refresh("p1", ["bar"], "Lugar")

        assert entry.nightlife_score == 77
        details_client.fetch_details.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_entry_is_refreshed(self, cache, repositories, details_client):
        await store(repositories, place_id="p1", nightlife_score=10, last_refreshed_at=NOW - timedelta(days=8))

        entry = await cache.get_or_refresh("p1", ["night_club"], "Club Noir")

        # 25 + 30 + 6
        assert entry.nightlife_score == 61
        assert entry.closes_late_on_weekend
        assert as_utc(entry.last_refreshed_at) == NOW
        stored = await repositories[0].get("p1")
        assert stored.nightlife_score == 61

    @pytest.mark.asyncio
    async def test_stale_entry_served_when_refresh_fails(self, cache, repositories, details_client):
        refreshed_at = NOW - timedelta(days=8)
        await store(repositories, place_id="p1", nightlife_score=77, last_refreshed_at=refreshed_at)
        details_client.fetch_details.side_effect = ProviderError(ErrorKind.UNAVAILABLE, "timeout")

        entry = await cache.get_or_refresh("p1", ["bar"], "Lugar")

        assert entry.nightlife_score == 77
        assert as_utc(entry.last_refreshed_at) == refreshed_at

    @pytest.mark.asyncio
    async def test_minimal_entry_when_nothing_cached(self, cache, repositories, details_client):
        details_client.fetch_details.side_effect = ProviderError(ErrorKind.RATE_LIMITED, "quota")

        entry = await cache.get_or_refresh("p1", ["bar"], "Lugar")

        assert entry.nightlife_score == 18
        assert entry.last_refreshed_at is None
        stored = await repositories[0].get("p1")
        assert stored is not None and stored.is_cold

        # Still eligible for a real refresh
        details_client.fetch_details.side_effect = late_night_details
        refreshed = await cache.get_or_refresh("p1", ["night_club"], "Lugar")
        assert refreshed.last_refreshed_at is not None
        assert details_client.fetch_details.await_count == 2

    @pytest.mark.asyncio
    async def test_blocked_entry_is_terminal(self, cache, repositories, details_client):
        await store(repositories, place_id="p1", is_blocked=True, last_refreshed_at=NOW - timedelta(days=30))

        entry = await cache.get_or_refresh("p1", ["night_club"], "Club Noir")

        assert entry.nightlife_score == 0
        details_client.fetch_details.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_verified_override_applies_prior_flags(self, cache, repositories, details_client):
        details_client.fetch_details.side_effect = lambda place_id: PlaceDetails(
            place_id=place_id, name="Bar Mattos", category_tags=["bar"],
        )
        await store(repositories, place_id="p1", community_flag_count=3, last_refreshed_at=NOW - timedelta(days=9))

        entry = await cache.get_or_refresh("p1", ["bar"], "Bar Mattos")

        assert entry.nightlife_score == 94

    @pytest.mark.asyncio
    async def test_details_name_wins_over_search_hit(self, cache, details_client):
        details_client.fetch_details.side_effect = lambda place_id: PlaceDetails(
            place_id=place_id, name="Boutique'in Chopp", category_tags=["bar"],
        )

        entry = await cache.get_or_refresh("p1", ["restaurant"], "Lugar Sem Nome")

        assert entry.nightlife_score == 95

    @pytest.mark.asyncio
    async def test_details_tags_win_over_search_hit(self, cache, details_client):
        details_client.fetch_details.side_effect = lambda place_id: PlaceDetails(
            place_id=place_id, category_tags=["night_club"],
        )

        entry = await cache.get_or_refresh("p1", ["restaurant"], "Lugar")

        assert entry.nightlife_score == 25

    @pytest.mark.asyncio
    async def test_search_tags_used_when_details_have_none(self, cache, details_client):
        details_client.fetch_details.side_effect = lambda place_id: PlaceDetails(place_id=place_id)

        entry = await cache.get_or_refresh("p1", ["bar"], "Lugar")

        assert entry.nightlife_score == 18


class TestBatchRefresh:

    @pytest.mark.asyncio
    async def test_concurrency_never_exceeds_batch_size(self, cache, details_client):
        in_flight = 0
        peak = 0

        async def slow_fetch(place_id):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return late_night_details(place_id)

        details_client.fetch_details.side_effect = slow_fetch
        venues = [make_venue(f"p{i}", tags=["night_club"]) for i in range(12)]

        results = await cache.batch_get_or_refresh(venues)

        assert set(results) == {f"p{i}" for i in range(12)}
        assert details_client.fetch_details.await_count == 12
        assert peak == 5

    @pytest.mark.asyncio
    async def test_pauses_between_batches(self, repositories, details_client):
        metadata, flags = repositories
        cache = MetadataCache(metadata, details_client, NightlifeClassifier(), flags=flags,
                              batch_size=5, batch_delay=0.1, clock=lambda: NOW)
        venues = [make_venue(f"p{i}") for i in range(12)]

        with patch("backend.src.services.metadata_cache.asyncio.sleep", new=AsyncMock()) as sleep:
            await cache.batch_get_or_refresh(venues)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_fresh_entries_skip_refresh(self, cache, repositories, details_client):
        await store(repositories, place_id="cached", nightlife_score=70, last_refreshed_at=NOW - timedelta(hours=2))

        results = await cache.batch_get_or_refresh([make_venue("cached"), make_venue("new", tags=["night_club"])])

        assert results["cached"].nightlife_score == 70
        assert [c.args[0] for c in details_client.fetch_details.await_args_list] == ["new"]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_batch(self, cache, repositories, details_client):
        stale_at = NOW - timedelta(days=10)
        await store(repositories, place_id="stale", nightlife_score=66, last_refreshed_at=stale_at)

        async def flaky(place_id):
            if place_id == "stale":
                raise ProviderError(ErrorKind.MALFORMED_RESPONSE, "garbage")
            if place_id == "broken":
                raise RuntimeError("boom")
            return late_night_details(place_id)

        details_client.fetch_details.side_effect = flaky
        venues = [make_venue("stale"), make_venue("broken", tags=["bar"]), make_venue("ok", tags=["night_club"])]

        results = await cache.batch_get_or_refresh(venues)

        assert results["stale"].nightlife_score == 66
        assert results["broken"].nightlife_score == 18
        assert results["ok"].nightlife_score == 61

    @pytest.mark.asyncio
    async def test_duplicate_ids_fetched_once(self, cache, details_client):
        await cache.batch_get_or_refresh([make_venue("p1"), make_venue("p1")])

        assert details_client.fetch_details.await_count == 1


class TestCommunityFlags:

    @pytest.mark.asyncio
    async def test_flag_creates_entry_and_counts(self, cache, repositories):
        result = await cache.record_community_flag("p1", "user-1", FlagType.NOT_NIGHTLIFE, "É uma padaria")

        assert result.recorded
        assert result.community_flag_count == 1
        stored = await repositories[0].get("p1")
        assert stored.community_flag_count == 1
        assert stored.is_cold

    @pytest.mark.asyncio
    async def test_duplicate_flag_is_already_reported(self, cache):
        await cache.record_community_flag("p1", "user-1", FlagType.CLOSED)

        duplicate = await cache.record_community_flag("p1", "user-1", FlagType.CLOSED)
        other_type = await cache.record_community_flag("p1", "user-1", FlagType.WRONG_CATEGORY)

        assert not duplicate.recorded
        assert duplicate.error == ErrorKind.ALREADY_REPORTED
        assert other_type.community_flag_count == 2

    @pytest.mark.asyncio
    async def test_flag_does_not_recompute_score(self, cache, repositories):
        await store(repositories, place_id="p1", nightlife_score=61, last_refreshed_at=NOW - timedelta(days=1))

        await cache.record_community_flag("p1", "user-1")

        stored = await repositories[0].get("p1")
        assert stored.nightlife_score == 61
        assert stored.community_flag_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_flags_are_not_lost(self, cache, repositories):
        await store(repositories, place_id="p1", nightlife_score=61, last_refreshed_at=NOW)
        cache.flag_block_threshold = None

        await asyncio.gather(*(cache.record_community_flag("p1", f"user-{i}") for i in range(6)))

        assert (await repositories[0].get("p1")).community_flag_count == 6

    @pytest.mark.asyncio
    async def test_threshold_blocks_venue(self, cache, repositories):
        await store(repositories, place_id="p1", nightlife_score=61, last_refreshed_at=NOW)

        for i in range(3):
            await cache.record_community_flag("p1", f"user-{i}")

        stored = await repositories[0].get("p1")
        assert stored.is_blocked
        assert stored.nightlife_score == 0

    @pytest.mark.asyncio
    async def test_refresh_keeps_flag_count(self, cache, repositories):
        await store(repositories, place_id="p1", last_refreshed_at=NOW - timedelta(days=8))
        await cache.record_community_flag("p1", "user-1")
        await cache.record_community_flag("p1", "user-2")

        # Upsert of an entry computed without the flags must not reset the counter
        await repositories[0].upsert(VenueClassification(place_id="p1", nightlife_score=50, last_refreshed_at=NOW))

        stored = await repositories[0].get("p1")
        assert stored.community_flag_count == 2
        assert stored.nightlife_score == 50

    @pytest.mark.asyncio
    async def test_remove_flag(self, cache):
        await cache.record_community_flag("p1", "user-1")
        await cache.record_community_flag("p1", "user-2")

        removed = await cache.remove_community_flag("p1", "user-1", FlagType.NOT_NIGHTLIFE)
        missing = await cache.remove_community_flag("p1", "user-1", FlagType.NOT_NIGHTLIFE)

        assert removed.community_flag_count == 1
        assert missing.error == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_counts_and_reporter_history(self, cache):
        await cache.record_community_flag("p1", "user-1", FlagType.CLOSED)
        await cache.record_community_flag("p1", "user-2", FlagType.CLOSED)
        await cache.record_community_flag("p2", "user-1", FlagType.WRONG_CATEGORY)

        counts = await cache.flag_counts("p1")
        history = await cache.reporter_flags("user-1")

        assert counts == {"not_nightlife": 0, "closed": 2, "wrong_category": 0}
        assert [f.place_id for f in history] == ["p2", "p1"]


class TestModeration:

    @pytest.mark.asyncio
    async def test_block_unknown_place(self, cache):
        entry = await cache.set_blocked("p9", True)

        assert entry.is_blocked
        assert entry.nightlife_score == 0

    @pytest.mark.asyncio
    async def test_verification_survives_refresh(self, cache, repositories):
        await store(repositories, place_id="p1", last_refreshed_at=NOW - timedelta(days=8))
        await cache.set_community_verification("p1", True)

        entry = await cache.get_or_refresh("p1", ["night_club"], "Club Noir")

        assert entry.community_verified is True
        assert entry.nightlife_score == 61 + 20


def details_transport(result):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "OK", "result": result})
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestMalformedDetails:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [
        {"place_id": "p1", "opening_hours": "24 horas"},
        {"place_id": "p1", "reviews": 5},
        {"place_id": "p1", "opening_hours": {"periods": [{"open": "1800"}]}},
    ])
    async def test_stale_entry_served(self, repositories, result):
        metadata, flags = repositories
        refreshed_at = NOW - timedelta(days=8)
        await metadata.upsert(VenueClassification(place_id="p1", nightlife_score=77, last_refreshed_at=refreshed_at))
        cache = MetadataCache(
            metadata, PlaceDetailsClient("k", client=details_transport(result)), NightlifeClassifier(),
            flags=flags, batch_delay=0, clock=lambda: NOW,
        )

        entry = await cache.get_or_refresh("p1", ["bar"], "Lugar")

        assert entry.nightlife_score == 77
        assert as_utc(entry.last_refreshed_at) == refreshed_at

    @pytest.mark.asyncio
    async def test_minimal_entry_when_nothing_cached(self, repositories):
        metadata, flags = repositories
        cache = MetadataCache(
            metadata, PlaceDetailsClient("k", client=details_transport({"reviews": "ótimo"})), NightlifeClassifier(),
            flags=flags, batch_delay=0, clock=lambda: NOW,
        )

        entry = await cache.get_or_refresh("p1", ["bar"], "Lugar")

        assert entry.nightlife_score == 18
        assert entry.is_cold
