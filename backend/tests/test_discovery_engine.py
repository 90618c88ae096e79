"""Tests for discovery fan-out, merge, ranking and diversification."""

import pytest

from venuescout.models.venue import DataSource, VenueCategory
from venuescout.schemas.recommendation import RecommendationRequest, extract_categories, map_preference_to_category
from venuescout.services.discovery_engine import (
    CuratedVenueSource,
    DiscoveryEngine,
    PlaceSearchVenueSource,
    SocialTextVenueSource,
)
from venuescout.services.errors import DiscoveryError
from venuescout.services.sources import venue_from_place

from conftest import DummyPlaces, DummyTextSource, DummyVenueSource, make_place, make_venue


def _joes_sources():
    place = venue_from_place(make_place("Joe's Restaurant", lat=21.1619, lng=-86.8515), "Cancun")
    social = make_venue("Joe's Restaurant", source=DataSource.REDDIT)
    return [
        DummyVenueSource("google_places", [place]),
        DummyVenueSource("reddit", [social]),
    ]


class TestMerge:
    @pytest.mark.parametrize("reverse", [False, True])
    async def test_place_search_wins_regardless_of_order(self, reverse):
        sources = _joes_sources()
        if reverse:
            sources.reverse()
        request = RecommendationRequest(destination="Cancun")

        result = await DiscoveryEngine(sources=sources).discover(request)

        joes = [v for v in result.venues if v.name == "Joe's Restaurant"]
        assert len(joes) == 1
        venue = joes[0]
        assert venue.primary_source == DataSource.GOOGLE_PLACES
        assert venue.has_source(DataSource.REDDIT)
        assert venue.quality_signals.cross_source_verified
        assert venue.metadata["merged_sources"] == ["google_places", "reddit"]

    def test_distant_namesakes_stay_separate(self):
        a = make_venue("Central Market", source=DataSource.GOOGLE_PLACES, location=(48.85, 2.35))
        b = make_venue("Central Market", source=DataSource.CURATED, location=(41.38, 2.17))

        merged = DiscoveryEngine(sources=[]).merge([("google_places", [a]), ("curated", [b])])

        assert len(merged) == 2

    def test_missing_location_is_filled_from_loser(self):
        located = make_venue("Harbour Grill", source=DataSource.CURATED, location=(48.85, 2.35))
        social = make_venue("Harbour Grill", source=DataSource.REDDIT)

        merged = DiscoveryEngine(sources=[]).merge([("curated", [located]), ("reddit", [social])])

        assert len(merged) == 1
        assert merged[0].primary_source == DataSource.REDDIT
        assert merged[0].location is not None


class TestDiscover:
    async def test_all_sources_failing_raises(self, paris_request):
        engine = DiscoveryEngine(sources=[
            DummyVenueSource("google_places", error=RuntimeError("quota")),
            DummyVenueSource("reddit", error=RuntimeError("offline")),
        ])
        with pytest.raises(DiscoveryError) as exc:
            await engine.discover(paris_request)
        assert set(exc.value.errors) == {"google_places", "reddit"}

    async def test_single_failure_is_isolated(self, paris_request):
        good = DummyVenueSource("curated", [make_venue("Harbour Grill", location=(48.85, 2.35))])
        bad = DummyVenueSource("google_places", error=RuntimeError("quota"))

        result = await DiscoveryEngine(sources=[good, bad]).discover(paris_request)

        assert [v.name for v in result.venues] == ["Harbour Grill"]
        assert result.metadata["failed_sources"] == {"google_places": "quota"}
        assert result.metadata["source_counts"] == {"curated": 1}

    async def test_every_venue_gets_a_discovery_score(self, paris_request):
        sources = [
            PlaceSearchVenueSource(DummyPlaces(results=[make_place("Harbour Grill"), make_place("Old Museum")])),
            CuratedVenueSource(),
        ]
        result = await DiscoveryEngine(sources=sources).discover(paris_request)

        assert result.venues
        for venue in result.venues:
            assert 0 <= venue.metadata["discovery_score"] <= 100

    async def test_social_source_extracts_mentions(self):
        posts = [
            {"id": "1", "title": "", "selftext": "I recommend Joe's Restaurant in Cancun, amazing"},
            {"id": "2", "title": "", "selftext": "Joe's Restaurant is great"},
        ]
        text_source = DummyTextSource(posts=posts)
        request = RecommendationRequest(destination="Cancun", preferences=["food"])

        venues = await SocialTextVenueSource(text_source).discover(request)

        assert text_source.calls
        assert venues[0].name == "Joe's Restaurant"
        assert venues[0].has_source(DataSource.REDDIT)


class TestRanking:
    def test_diversify_caps_dominant_category(self):
        venues = []
        for i in range(6):
            v = make_venue(f"Dining Spot {i} Grill", category=VenueCategory.DINING)
            v.metadata["discovery_score"] = 90 - i
            venues.append(v)
        museum = make_venue("Old Town Museum", category=VenueCategory.CULTURE)
        museum.metadata["discovery_score"] = 10
        gallery = make_venue("Harbour Gallery", category=VenueCategory.CULTURE)
        gallery.metadata["discovery_score"] = 5
        venues += [museum, gallery]

        selected = DiscoveryEngine.diversify(venues, limit=6)

        assert museum in selected and gallery in selected
        assert sum(1 for v in selected if v.category == VenueCategory.DINING) == 4

    def test_diversify_fills_limit_when_a_category_is_sparse(self):
        venues = []
        for i in range(9):
            v = make_venue(f"Dining Spot {i} Grill", category=VenueCategory.DINING)
            v.metadata["discovery_score"] = 90 - i
            venues.append(v)
        museum = make_venue("Old Town Museum", category=VenueCategory.CULTURE)
        museum.metadata["discovery_score"] = 10
        venues.append(museum)

        selected = DiscoveryEngine.diversify(venues, limit=10)

        assert len(selected) == 10
        assert museum in selected
        scores = [v.metadata["discovery_score"] for v in selected]
        assert scores == sorted(scores, reverse=True)

    def test_diversify_empty(self):
        assert DiscoveryEngine.diversify([], 10) == []

    def test_composite_score_is_bounded(self):
        venue = make_venue("Harbour Grill", source=DataSource.GOOGLE_PLACES)
        venue.metadata.update({"popularity": 500, "analysis_score": 500, "rating": 50})
        assert DiscoveryEngine.composite_score(venue) == 100.0


class TestCategoryMapping:
    def test_preferences_map_to_categories(self):
        assert map_preference_to_category("museums") == VenueCategory.CULTURE
        assert map_preference_to_category("dining") == VenueCategory.DINING
        assert map_preference_to_category("skydiving") is None

    def test_extract_categories_deduplicates(self):
        request = RecommendationRequest(destination="Paris", categories=["culture"], preferences=["art", "food"])
        assert extract_categories(request) == ["culture", "dining"]
