"""Tests for the three-level fallback manager."""

from venuescout.models.venue import DataSource
from venuescout.schemas.recommendation import RecommendationRequest
from venuescout.services.errors import PlacesError
from venuescout.services.fallback_manager import (
    MAX_PLACE_QUERIES,
    FallbackManager,
    FallbackOptions,
    venue_from_generic,
)

from conftest import DummyPlaces, make_place


class TestLevelOrder:
    async def test_curated_level_wins_without_place_calls(self, paris_request):
        places = DummyPlaces(results=[make_place("Harbour Grill")])
        manager = FallbackManager(places=places)

        result = await manager.execute_fallback(paris_request, "venue_discovery")

        assert result.level == 1
        assert result.source == "Curated Database"
        assert result.venues
        assert all(v.has_source(DataSource.CURATED) for v in result.venues)
        assert places.calls == []
        assert result.metadata["original_failure"] == "venue_discovery"

    async def test_unknown_destination_falls_through_to_place_search(self, unknown_request):
        places = DummyPlaces(results=[make_place("Harbour Grill"), make_place("Sea Breeze Cafe")])
        manager = FallbackManager(places=places)

        result = await manager.execute_fallback(unknown_request)

        assert result.level == 2
        assert {v.name for v in result.venues} == {"Harbour Grill", "Sea Breeze Cafe"}
        assert 0 < len(places.calls) <= MAX_PLACE_QUERIES
        first = result.attempts[0]
        assert first.ran and not first.success and first.error

    async def test_disabled_levels_advance(self, paris_request):
        places = DummyPlaces(results=[make_place("Harbour Grill")])
        options = FallbackOptions(enable_curated=False, enable_place_search=False)
        manager = FallbackManager(places=places, options=options)

        result = await manager.execute_fallback(paris_request)

        assert result.level == 3
        assert places.calls == []
        assert [a.error for a in result.attempts[:2]] == ["disabled", "disabled"]
        assert all(v.metadata.get("generic") for v in result.venues)

    async def test_place_errors_advance_to_generic(self, unknown_request):
        places = DummyPlaces(error=PlacesError("OVER_QUERY_LIMIT"))
        result = await FallbackManager(places=places).execute_fallback(unknown_request)

        assert result.level == 3
        assert "OVER_QUERY_LIMIT" in result.attempts[1].error

    async def test_exhausted_fallback_returns_empty_result(self, unknown_request):
        options = FallbackOptions(enable_curated=False, enable_place_search=False, enable_generic=False)
        result = await FallbackManager(places=DummyPlaces(), options=options).execute_fallback(unknown_request)

        assert result.level is None
        assert result.venues == []
        assert len(result.attempts) == 3
        assert result.to_dict()["venue_count"] == 0


class TestLevels:
    async def test_curated_filters_by_category(self):
        request = RecommendationRequest(destination="Paris", categories=["dining"])
        venues = await FallbackManager(places=DummyPlaces()).curated_database_fallback(request)
        assert venues
        assert {v.category.value for v in venues} == {"dining"}

    async def test_curated_maps_preference_terms_to_categories(self):
        request = RecommendationRequest(destination="Paris", categories=["food"])
        result = await FallbackManager(places=DummyPlaces()).execute_fallback(request)

        assert result.level == 1
        assert {v.category.value for v in result.venues} == {"dining"}

    async def test_place_search_deduplicates_and_caps(self, unknown_request):
        places = DummyPlaces(results=[make_place(f"Venue {i} Grill") for i in range(10)])
        manager = FallbackManager(places=places, options=FallbackOptions(max_venues=4))

        venues = await manager.place_search_fallback(unknown_request)

        assert len(venues) == 4
        assert len({v.name for v in venues}) == 4

    def test_place_queries_are_capped(self):
        queries = FallbackManager.generate_place_queries("Lisbon", ["culture", "dining", "nature"])
        assert len(queries) == MAX_PLACE_QUERIES
        assert queries[0] == "things to do in Lisbon"

    def test_generic_venues_are_deterministic(self):
        template = {"name": "{destination} Old Town", "description": "Walk around {destination}"}
        first = venue_from_generic(template, "attraction", "Lisbon")
        second = venue_from_generic(template, "attraction", "Lisbon")

        assert first.name == "Lisbon Old Town"
        assert first.location.to_dict() == second.location.to_dict()
        assert first.has_source(DataSource.FALLBACK)
