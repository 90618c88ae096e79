"""Fallback manager — hierarchical venue sources used when the pipeline fails.

Levels are tried strictly in order until one yields at least one venue:

  1. Curated Database   — hand-picked venues for well-known destinations
  2. Place Search       — a handful of category-derived place-search queries
  3. Generic Activities — templated activities placed around the destination

A disabled level, a raised error and an empty result all advance to the next
level. Every attempt is recorded in the result metadata. Never raises.
"""

import asyncio
import hashlib
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any

from venuescout.config import settings
from venuescout.data.curated_venues import CURATED_VENUES, destination_coordinates, match_destination
from venuescout.data.generic_activities import DEFAULT_GENERIC_CATEGORIES, GENERIC_ACTIVITIES
from venuescout.models.venue import Coordinates, DataSource, PriceRange, Venue, VenueCategory
from venuescout.schemas.recommendation import RecommendationRequest, extract_categories
from venuescout.services.sources import PlaceSearchSource, places_client, venue_from_place

logger = logging.getLogger(__name__)

MAX_PLACE_QUERIES = 5
GENERIC_JITTER_DEGREES = 0.01

CATEGORY_PLACE_QUERIES: dict[str, tuple[str, ...]] = {
    "culture": ("museums in {d}", "cultural sites in {d}", "historical places in {d}"),
    "dining": ("best restaurants in {d}", "local food in {d}", "cafes in {d}"),
    "nature": ("parks in {d}", "gardens in {d}", "outdoor activities in {d}"),
    "shopping": ("shopping in {d}", "markets in {d}", "malls in {d}"),
    "nightlife": ("bars in {d}", "clubs in {d}", "nightlife in {d}"),
}
BASE_PLACE_QUERIES: tuple[str, ...] = ("things to do in {d}", "attractions in {d}", "restaurants in {d}")


# ---------- Data structures ----------


@dataclass
class FallbackOptions:
    enable_curated: bool = True
    enable_place_search: bool = True
    enable_generic: bool = True
    max_venues: int = settings.max_fallback_venues


@dataclass
class FallbackAttempt:
    level: int
    name: str
    ran: bool = False
    success: bool = False
    venue_count: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "name": self.name,
            "ran": self.ran,
            "success": self.success,
            "venue_count": self.venue_count,
            "error": self.error,
        }


@dataclass
class FallbackResult:
    level: int | None = None
    venues: list[Venue] = field(default_factory=list)
    source: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def attempts(self) -> list[FallbackAttempt]:
        return self.metadata.get("attempts", [])

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "source": self.source,
            "venue_count": len(self.venues),
            "original_failure": self.metadata.get("original_failure"),
            "attempts": [a.to_dict() for a in self.attempts],
        }


class LevelDisabled(Exception):
    """Raised internally when a fallback level is switched off."""


# ---------- Venue adapters ----------


def _normalize_name(name: str) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().lower())


def venue_from_curated(data: dict) -> Venue:
    """Normalize a curated table row into a Venue."""
    coords = data.get("coordinates")
    price = data.get("price_range")
    venue = Venue(
        name=data["name"],
        category=VenueCategory.parse(data.get("category")) or VenueCategory.ATTRACTION,
        description=data.get("description", ""),
        location=Coordinates(lat=coords["lat"], lng=coords["lng"]) if coords else None,
        price_range=PriceRange(**price) if price else None,
    )
    venue.add_source(DataSource.CURATED, data)
    qs = venue.quality_signals
    qs.has_real_location = coords is not None
    qs.has_valid_business_info = True
    qs.passes_name_validation = True
    qs.mention_frequency = int(data.get("popularity") or 5)
    venue.metadata.update({"popularity": float(data.get("popularity") or 5), "tags": list(data.get("tags", []))})
    venue.update_confidence_score()
    return venue


def venue_from_generic(template: dict, category: str, destination: str) -> Venue:
    """Fill a generic activity template for a destination."""
    name = template["name"].replace("{destination}", destination)
    base_lat, base_lng = destination_coordinates(destination)
    seed = int(hashlib.md5(f"{destination}|{name}".lower().encode()).hexdigest()[:8], 16)
    rng = random.Random(seed)
    venue = Venue(
        name=name,
        category=VenueCategory.parse(category) or VenueCategory.ATTRACTION,
        description=template.get("description", "").replace("{destination}", destination),
        location=Coordinates(
            lat=round(base_lat + (rng.random() - 0.5) * 2 * GENERIC_JITTER_DEGREES, 6),
            lng=round(base_lng + (rng.random() - 0.5) * 2 * GENERIC_JITTER_DEGREES, 6),
        ),
        price_range=PriceRange(**template["price_range"]) if template.get("price_range") else None,
    )
    venue.add_source(DataSource.FALLBACK, template)
    qs = venue.quality_signals
    qs.has_valid_business_info = False
    qs.passes_name_validation = True
    qs.mention_frequency = 1
    venue.metadata["generic"] = True
    venue.update_confidence_score()
    return venue


# ---------- Manager ----------


class FallbackManager:
    def __init__(
        self,
        places: PlaceSearchSource = places_client,
        options: FallbackOptions | None = None,
        curated: dict[str, list[dict]] = CURATED_VENUES,
        generic: dict[str, list[dict]] = GENERIC_ACTIVITIES,
    ):
        self.places = places
        self.options = options or FallbackOptions()
        self.curated = curated
        self.generic = generic
        self.levels = (
            ("Curated Database", self.curated_database_fallback),
            ("Place Search", self.place_search_fallback),
            ("Generic Activities", self.generic_activities_fallback),
        )

    async def execute_fallback(self, request: RecommendationRequest, failed_stage: str = "unknown") -> FallbackResult:
        logger.info(f"Executing fallback for {request.destination} (failed stage: {failed_stage})")
        attempts: list[FallbackAttempt] = []
        result = FallbackResult(metadata={
            "original_failure": failed_stage,
            "destination": request.destination,
            "categories": list(request.categories),
            "attempts": attempts,
        })

        for index, (name, handler) in enumerate(self.levels, start=1):
            attempt = FallbackAttempt(level=index, name=name)
            attempts.append(attempt)
            try:
                venues = await handler(request)
                attempt.ran = True
            except LevelDisabled:
                attempt.error = "disabled"
                continue
            except Exception as e:
                attempt.ran = True
                attempt.error = str(e)
                logger.warning(f"Fallback level {index} ({name}) failed: {e}")
                continue

            attempt.venue_count = len(venues)
            attempt.success = bool(venues)
            if venues:
                logger.info(f"Fallback level {index} ({name}) produced {len(venues)} venues")
                result.level = index
                result.venues = venues
                result.source = name
                return result

        logger.error(f"All fallback levels failed for {request.destination}")
        return result

    # ----- level 1 -----

    async def curated_database_fallback(self, request: RecommendationRequest) -> list[Venue]:
        if not self.options.enable_curated:
            raise LevelDisabled()

        key = match_destination(request.destination, self.curated)
        if key is None:
            raise LookupError(f"No curated data for {request.destination}")

        rows = self.curated[key]
        wanted = set(extract_categories(request))
        if wanted:
            rows = [r for r in rows if r.get("category") in wanted or wanted & set(r.get("tags", []))]
        return [venue_from_curated(r) for r in rows][: self.options.max_venues]

    # ----- level 2 -----

    @staticmethod
    def generate_place_queries(destination: str, categories: list[str]) -> list[str]:
        templates = list(BASE_PLACE_QUERIES)
        for category in categories:
            templates.extend(CATEGORY_PLACE_QUERIES.get(category, ()))
        return [t.format(d=destination) for t in templates][:MAX_PLACE_QUERIES]

    async def place_search_fallback(self, request: RecommendationRequest) -> list[Venue]:
        if not self.options.enable_place_search:
            raise LevelDisabled()

        categories = extract_categories(request) or list(DEFAULT_GENERIC_CATEGORIES)
        queries = self.generate_place_queries(request.destination, categories)
        results = await asyncio.gather(
            *(self.places.search(q, categories) for q in queries),
            return_exceptions=True,
        )

        venues: list[Venue] = []
        errors: list[BaseException] = []
        for query, res in zip(queries, results):
            if isinstance(res, BaseException):
                logger.warning(f"Place search query {query!r} failed: {res}")
                errors.append(res)
                continue
            venues.extend(venue_from_place(p, request.destination) for p in res if p.get("name"))

        if errors and len(errors) == len(queries):
            raise errors[0]

        unique: dict[str, Venue] = {}
        for v in venues:
            unique.setdefault(_normalize_name(v.name), v)
        ranked = sorted(unique.values(), key=lambda v: (-v.confidence_score, v.name.lower()))
        return ranked[: self.options.max_venues]

    # ----- level 3 -----

    async def generic_activities_fallback(self, request: RecommendationRequest) -> list[Venue]:
        if not self.options.enable_generic:
            raise LevelDisabled()

        venues: list[Venue] = []
        for category in extract_categories(request) or DEFAULT_GENERIC_CATEGORIES:
            for template in self.generic.get(category, ()):
                venues.append(venue_from_generic(template, category, request.destination))
                if len(venues) >= self.options.max_venues:
                    return venues
        return venues


# Singleton
fallback_manager = FallbackManager()
