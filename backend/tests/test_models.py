import time
from datetime import date

import pytest
from pydantic import ValidationError

from venuescout.models import (
    Coordinates,
    DataSource,
    PriceRange,
    ProcessingResult,
    ProcessingStatus,
    Recommendation,
    Venue,
    VenueCategory,
)
from venuescout.schemas.recommendation import RecommendationRequest


class TestProcessingResult:
    def test_lifecycle(self):
        result = ProcessingResult()
        assert not result.is_terminal

        started = time.monotonic()
        result.start().set_success([1, 2], {"count": 2}).set_processing_time(started)

        assert result.status == ProcessingStatus.COMPLETED
        assert result.is_success and result.is_terminal
        assert result.to_dict()["metadata"] == {"count": 2}

    def test_skipped_and_failed_are_terminal(self):
        assert ProcessingResult().set_skipped("disabled").is_terminal
        failed = ProcessingResult().set_error("boom").add_warning("slow")
        assert failed.is_failed
        assert failed.errors == ["boom"]
        assert failed.warnings == ["slow"]


class TestVenue:
    def test_add_source_replaces_same_type(self):
        venue = Venue(name="Harbour Grill")
        venue.add_source(DataSource.REDDIT, {"mention_count": 1})
        venue.add_source(DataSource.GOOGLE_PLACES, {"place_id": "x"})
        venue.add_source(DataSource.REDDIT, {"mention_count": 3})

        assert len(venue.sources) == 2
        assert venue.primary_source == DataSource.REDDIT
        assert venue.get_source_data(DataSource.REDDIT) == {"mention_count": 3}
        assert venue.get_source_data(DataSource.CURATED) is None

    def test_category_parse(self):
        assert VenueCategory.parse("Dining") == VenueCategory.DINING
        assert VenueCategory.parse(VenueCategory.NATURE) == VenueCategory.NATURE
        assert VenueCategory.parse("spaceport") is None

    def test_coordinates(self):
        paris = Coordinates(lat=48.8566, lng=2.3522)
        london = Coordinates(lat=51.5074, lng=-0.1278)

        assert paris.is_valid()
        assert not Coordinates(lat=float("nan"), lng=0).is_valid()
        assert 330 < paris.distance_km(london) < 360

    def test_price_display(self):
        assert PriceRange(min=10, max=25, currency="EUR").display() == "EUR 10-25"
        assert PriceRange(level=3).display() == "$$$"

    def test_custom_signal_lookup(self):
        venue = Venue(name="Harbour Grill")
        venue.quality_signals.add_signal("editor_pick", 10, weight=0.5)
        assert venue.quality_signals.get_signal("editor_pick").weight == 0.5
        assert venue.update_confidence_score() == 5.0

    def test_recommendation_alternatives_serialise(self):
        rec = Recommendation.from_venue(Venue(name="Harbour Grill"), score=55, tags=["a", "a"])
        rec.alternatives.append(Venue(name="Sea Breeze Cafe"))

        data = rec.to_dict()
        assert data["tags"] == ["a"]
        assert data["alternatives"][0]["name"] == "Sea Breeze Cafe"


class TestRecommendationRequest:
    def test_terms_are_normalised(self):
        req = RecommendationRequest(destination=" Paris ", categories=["Culture", "culture ", ""])
        assert req.destination == "Paris"
        assert req.categories == ["culture"]

    def test_trip_duration(self):
        req = RecommendationRequest(destination="Paris", start_date=date(2026, 5, 1), end_date=date(2026, 5, 4))
        assert req.trip_duration_days == 3
        assert RecommendationRequest(destination="Paris").trip_duration_days == 2

    def test_cache_key_ignores_category_order(self):
        a = RecommendationRequest(destination="New York", categories=["dining", "culture"])
        b = RecommendationRequest(destination="new york", categories=["culture", "dining"])
        assert a.cache_key() == b.cache_key()

    def test_cache_key_varies_with_preferences(self):
        food = RecommendationRequest(destination="Paris", preferences=["food"])
        museums = RecommendationRequest(destination="Paris", preferences=["museums"])
        assert food.cache_key() != museums.cache_key()

    def test_reversed_dates_rejected(self):
        with pytest.raises(ValidationError):
            RecommendationRequest(destination="Paris", start_date=date(2026, 5, 4), end_date=date(2026, 5, 1))
