import pytest

from venuescout.models.venue import Coordinates, DataSource, Venue, VenueCategory
from venuescout.schemas.recommendation import RecommendationRequest
from venuescout.services.pipeline import PipelineResult


class DummyPlaces:
    """Place-search fake that records every query it receives."""

    def __init__(self, results=None, error: Exception | None = None):
        self.results = results if results is not None else []
        self.error = error
        self.calls: list[str] = []

    async def search(self, location_query, category_hints=None):
        self.calls.append(location_query)
        if self.error is not None:
            raise self.error
        return list(self.results)


class DummyTextSource:
    def __init__(self, posts=None, error: Exception | None = None):
        self.posts = posts if posts is not None else []
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, query, limit=25):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return list(self.posts)


class DummyVenueSource:
    """Discovery source fake returning a fixed venue list."""

    def __init__(self, name: str, venues=None, error: Exception | None = None):
        self.name = name
        self.venues = venues or []
        self.error = error
        self.calls = 0

    async def discover(self, request):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.venues)


class FailingPipeline:
    """Pipeline stand-in that always fails at a fixed stage."""

    def __init__(self, failed_at="venue_discovery"):
        self.failed_at = failed_at
        self.runs = 0

    async def execute(self, data):
        self.runs += 1
        return PipelineResult(success=False, error="all sources failed", metadata={"failed_at": self.failed_at})

    def get_metrics(self):
        return {"overall": {"total_runs": self.runs}, "stages": {}}

    def reset_metrics(self):
        self.runs = 0


def make_place(name: str, lat: float = 48.8566, lng: float = 2.3522, rating: float = 4.5, **extra) -> dict:
    place = {
        "place_id": f"pid_{name.lower().replace(' ', '_')}",
        "name": name,
        "types": ["restaurant", "point_of_interest"],
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "rating": rating,
        "user_ratings_total": 320,
        "price_level": 2,
        "formatted_address": f"1 Main Street, {name}",
    }
    place.update(extra)
    return place


def make_venue(
    name: str,
    category: VenueCategory = VenueCategory.DINING,
    source: DataSource = DataSource.CURATED,
    location: tuple[float, float] | None = None,
    confidence: float | None = None,
) -> Venue:
    venue = Venue(name=name, category=category)
    venue.add_source(source, {"name": name})
    if location is not None:
        venue.location = Coordinates(lat=location[0], lng=location[1])
        venue.quality_signals.has_real_location = True
    venue.quality_signals.passes_name_validation = True
    if confidence is None:
        venue.update_confidence_score()
    else:
        venue.confidence_score = confidence
    return venue


@pytest.fixture
def paris_request():
    return RecommendationRequest(destination="Paris", categories=["culture"])


@pytest.fixture
def unknown_request():
    return RecommendationRequest(destination="Atlantis", categories=["dining"])
