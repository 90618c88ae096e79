"""Tests for source adapters: mocks, rate limiting, place normalisation and the enhancement guard."""

import copy
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from venuescout.models.venue import DataSource, Venue, VenueCategory
from venuescout.services.errors import PlacesError, SourceError
from venuescout.services.sources import (
    PlacesClient,
    RateLimiter,
    RedditClient,
    VenueEnhancer,
    category_from_place_types,
    guard_enhancement,
    venue_from_place,
)

from conftest import make_place, make_venue


def _venues():
    return [make_venue("Harbour Grill"), make_venue("Old Town Museum", VenueCategory.CULTURE)]


class TestGuardEnhancement:
    def test_count_mismatch_reverts(self):
        original = _venues()
        enhanced = copy.deepcopy(original)[:1]
        assert guard_enhancement(original, enhanced) is original

    def test_duplicate_names_revert(self):
        original = _venues()
        enhanced = copy.deepcopy(original)
        enhanced[1].name = "Harbour Grill"
        assert guard_enhancement(original, enhanced) is original

    def test_unknown_name_reverts(self):
        original = _venues()
        enhanced = copy.deepcopy(original)
        enhanced[0].name = "Invented Palace"
        assert guard_enhancement(original, enhanced) is original

    def test_identity_preserving_output_is_accepted(self):
        original = _venues()
        enhanced = copy.deepcopy(original)
        enhanced[0].description = "Fresh seafood on the waterfront"
        assert guard_enhancement(original, enhanced) is enhanced


class TestVenueEnhancer:
    async def test_inactive_enhancer_returns_input(self):
        client = MagicMock(available=False)
        venues = _venues()
        assert await VenueEnhancer(client=client, enabled=True).enhance(venues, {}) is venues

    async def test_applies_descriptions(self):
        client = MagicMock(available=True)
        client.complete_json = AsyncMock(return_value={"venues": [
            {"name": "Harbour Grill", "description": "Seafood by the docks"},
            {"name": "Old Town Museum", "description": "Local history"},
        ]})
        venues = _venues()

        result = await VenueEnhancer(client=client, enabled=True).enhance(venues, {"destination": "Lisbon"})

        assert [v.description for v in result] == ["Seafood by the docks", "Local history"]
        assert all(v.has_source(DataSource.AI_ENHANCED) for v in result)
        assert not venues[0].has_source(DataSource.AI_ENHANCED)

    async def test_extra_entries_revert(self):
        client = MagicMock(available=True)
        client.complete_json = AsyncMock(return_value={"venues": [
            {"name": "Harbour Grill"}, {"name": "Old Town Museum"}, {"name": "Bonus Bar"},
        ]})
        venues = _venues()
        assert await VenueEnhancer(client=client, enabled=True).enhance(venues, {}) is venues

    async def test_llm_failure_keeps_originals(self):
        client = MagicMock(available=True)
        client.complete_json = AsyncMock(side_effect=RuntimeError("All LLM providers failed"))
        venues = _venues()
        assert await VenueEnhancer(client=client, enabled=True).enhance(venues, {}) is venues


class TestRateLimiter:
    def test_remaining_requests(self):
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        assert limiter.can_make_request()
        limiter.record_request()
        limiter.record_request()
        assert not limiter.can_make_request()
        assert limiter.get_remaining() == 0

    async def test_acquire_waits_for_window(self):
        limiter = RateLimiter(max_requests=1, window_seconds=0.05)
        await limiter.acquire()
        await limiter.acquire()
        assert limiter.get_remaining() == 0


class TestRedditClient:
    def test_query_generation_is_capped(self):
        queries = RedditClient.generate_queries("Tulum", ["dining", "culture", "nature", "shopping"])
        assert len(queries) == 5
        assert queries[0] == "Tulum recommendations"

    async def test_mock_posts_are_deterministic(self):
        client = RedditClient(enabled=False)
        first = await client.fetch("Tulum recommendations")
        second = await client.fetch("Tulum recommendations")

        assert first == second
        assert 4 <= len(first) <= 7
        assert all(p["mock"] for p in first)

    async def test_http_errors_become_source_errors(self):
        client = RedditClient(enabled=True, rate_limiter=RateLimiter(100))
        fake_http = MagicMock()
        fake_http.get = AsyncMock(side_effect=httpx.ConnectError("offline"))
        client._client = fake_http

        with pytest.raises(SourceError):
            await client.fetch("Tulum recommendations")


class TestPlacesClient:
    async def test_mock_places_without_key(self):
        results = await PlacesClient(api_key="").search("museums in Paris", ["culture"])

        assert 2 <= len(results) <= 4
        assert all(r["mock"] for r in results)
        assert category_from_place_types(results[0]["types"]) == VenueCategory.CULTURE

    async def test_failed_status_raises(self):
        client = PlacesClient(api_key="secret")
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json = MagicMock(return_value={"status": "REQUEST_DENIED", "error_message": "bad key"})
        fake_http = MagicMock()
        fake_http.get = AsyncMock(return_value=response)
        client._client = fake_http

        with pytest.raises(PlacesError) as exc:
            await client.search("museums in Paris")
        assert "REQUEST_DENIED" in str(exc.value)


class TestVenueFromPlace:
    def test_normalises_signals(self):
        venue = venue_from_place(make_place("Harbour Grill", rating=4.0), "Paris")

        assert isinstance(venue, Venue)
        assert venue.category == VenueCategory.DINING
        assert venue.primary_source == DataSource.GOOGLE_PLACES
        assert venue.quality_signals.has_real_location
        assert venue.quality_signals.mention_frequency == 4
        assert venue.quality_signals.sentiment_score == pytest.approx(0.5)
        assert venue.metadata["rating"] == 4.0

    def test_missing_geometry(self):
        place = make_place("Harbour Grill")
        place.pop("geometry")
        venue = venue_from_place(place)
        assert venue.location is None
        assert not venue.quality_signals.has_real_location
