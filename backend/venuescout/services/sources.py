"""External source adapters — social posts, place search and AI enhancement.

Each adapter owns its HTTP client and (where needed) its rate limiter. With no
credentials configured the adapters serve deterministic mock data so the rest
of the pipeline can run offline.
"""

import asyncio
import copy
import hashlib
import logging
import random
import time
from collections import deque
from typing import Protocol

import httpx

from venuescout.config import settings
from venuescout.data.curated_venues import destination_coordinates
from venuescout.models.venue import Coordinates, DataSource, PriceRange, Venue, VenueCategory
from venuescout.services.errors import PlacesError, SourceError
from venuescout.services.llm_client import LLMClient, llm_client

logger = logging.getLogger(__name__)


# ---------- Capability protocols ----------


class RawTextSource(Protocol):
    async def fetch(self, query: str, limit: int = 25) -> list[dict]: ...


class PlaceSearchSource(Protocol):
    async def search(self, location_query: str, category_hints: list[str] | None = None) -> list[dict]: ...


class AIEnhancer(Protocol):
    async def enhance(self, venues: list[Venue], context: dict) -> list[Venue]: ...


# ---------- Rate limiting ----------


class RateLimiter:
    """Sliding-window request limiter owned by a single adapter.

    Usage:
        limiter = RateLimiter(max_requests=30, window_seconds=60)
        await limiter.acquire()
    """

    def __init__(self, max_requests: int, window_seconds: float = 60.0):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    def can_make_request(self) -> bool:
        self._prune(time.monotonic())
        return len(self._calls) < self.max_requests

    def record_request(self) -> None:
        self._calls.append(time.monotonic())

    def get_remaining(self) -> int:
        self._prune(time.monotonic())
        return max(0, self.max_requests - len(self._calls))

    async def acquire(self) -> None:
        """Wait until a request slot is free, then take it."""
        async with self._lock:
            while not self.can_make_request():
                wait = self.window_seconds - (time.monotonic() - self._calls[0])
                logger.debug(f"Rate limit reached, waiting {wait:.2f}s")
                await asyncio.sleep(max(wait, 0.01))
            self.record_request()


def _seeded_rng(*parts: str) -> random.Random:
    seed = int(hashlib.md5("|".join(parts).lower().encode()).hexdigest()[:8], 16)
    return random.Random(seed)


# ---------- Reddit ----------

TRAVEL_SUBREDDITS = ("travel", "solotravel", "TravelHacks", "backpacking")

PREFERENCE_QUERY_TERMS: dict[str, str] = {
    "dining": "best restaurants",
    "culture": "museums and culture",
    "nature": "outdoor activities",
    "shopping": "where to shop",
    "nightlife": "best bars nightlife",
    "wellness": "spa yoga",
}


class RedditClient:
    """Adapter for Reddit's public search JSON endpoint."""

    def __init__(self, enabled: bool = settings.reddit_enabled, rate_limiter: RateLimiter | None = None):
        self._enabled = enabled
        self._client: httpx.AsyncClient | None = None
        self.rate_limiter = rate_limiter or RateLimiter(settings.reddit_requests_per_minute, 60.0)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.reddit_base_url,
                timeout=settings.http_timeout_seconds,
                headers={"User-Agent": settings.reddit_user_agent},
            )
        return self._client

    @staticmethod
    def generate_queries(destination: str, preferences: list[str] | None = None, limit: int = 5) -> list[str]:
        queries = [f"{destination} recommendations", f"{destination} things to do", f"{destination} hidden gems"]
        for pref in preferences or []:
            term = PREFERENCE_QUERY_TERMS.get(pref)
            if term:
                queries.append(f"{destination} {term}")
        return queries[:limit]

    async def fetch(self, query: str, limit: int = 25) -> list[dict]:
        if not self._enabled:
            return self._generate_mock_posts(query)

        await self.rate_limiter.acquire()
        try:
            client = await self._get_client()
            resp = await client.get(
                "/search.json",
                params={"q": query, "limit": limit, "sort": "relevance", "t": "year", "type": "link"},
            )
            resp.raise_for_status()
            children = resp.json().get("data", {}).get("children", [])
        except (httpx.HTTPError, ValueError) as e:
            raise SourceError("reddit", f"search failed for {query!r}: {e}") from e

        posts = []
        for child in children:
            d = child.get("data", {})
            posts.append({
                "id": d.get("id"),
                "title": d.get("title", ""),
                "selftext": d.get("selftext", ""),
                "score": d.get("score", 0),
                "num_comments": d.get("num_comments", 0),
                "subreddit": d.get("subreddit"),
                "url": d.get("url"),
                "created_utc": d.get("created_utc"),
            })
        return posts

    def _generate_mock_posts(self, query: str) -> list[dict]:
        """Deterministic posts shaped like real travel threads."""
        rng = _seeded_rng("reddit", query)
        destination = " ".join(w for w in query.split() if w[:1].isupper()) or query.split(" ")[0].title()
        names = [
            "Casa Luna Restaurant", "El Farolito Cafe", "Mercado Central", "Blue Lagoon Beach Club",
            "San Miguel Museum", "Rosa's Kitchen", "La Terraza Rooftop Bar", "Jardin Botanico Park",
        ]
        templates = [
            "I highly recommend {name} in {dest}. The food was amazing and prices around ${price} per person.",
            "We went to {name} on our second day, absolutely loved it! Open 9am - 5pm.",
            "{name} is amazing, do not miss it. Spent about 2 hours there.",
            "Check out {name} near Downtown, great vibe and friendly staff.",
        ]
        posts = []
        for i in range(rng.randint(4, 7)):
            name = names[rng.randrange(len(names))]
            template = templates[i % len(templates)]
            posts.append({
                "id": f"mock_{hashlib.md5(f'{query}{i}'.encode()).hexdigest()[:8]}",
                "title": f"{destination} trip report #{i + 1}",
                "selftext": template.format(name=name, dest=destination, price=rng.randint(10, 60)),
                "score": rng.randint(5, 500),
                "num_comments": rng.randint(0, 120),
                "subreddit": TRAVEL_SUBREDDITS[i % len(TRAVEL_SUBREDDITS)],
                "url": None,
                "mock": True,
            })
        return posts

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


# ---------- Google Places ----------

PLACE_TYPE_CATEGORIES: tuple[tuple[VenueCategory, frozenset[str]], ...] = (
    (VenueCategory.DINING, frozenset({"restaurant", "cafe", "bakery", "meal_takeaway", "food"})),
    (VenueCategory.NIGHTLIFE, frozenset({"bar", "night_club", "liquor_store"})),
    (VenueCategory.CULTURE, frozenset({"museum", "art_gallery", "church", "hindu_temple", "place_of_worship",
                                        "library", "movie_theater"})),
    (VenueCategory.NATURE, frozenset({"park", "natural_feature", "zoo", "aquarium", "campground"})),
    (VenueCategory.SHOPPING, frozenset({"shopping_mall", "store", "clothing_store", "market", "book_store"})),
    (VenueCategory.ACCOMMODATION, frozenset({"lodging"})),
    (VenueCategory.WELLNESS, frozenset({"spa", "gym", "beauty_salon"})),
    (VenueCategory.TRANSPORTATION, frozenset({"transit_station", "train_station", "airport", "bus_station"})),
)

CATEGORY_PLACE_TYPES: dict[str, str] = {
    "dining": "restaurant",
    "culture": "museum",
    "nature": "park",
    "shopping": "shopping_mall",
    "nightlife": "bar",
    "accommodation": "lodging",
    "wellness": "spa",
    "attraction": "tourist_attraction",
}

_MOCK_PLACE_NAMES: dict[VenueCategory, tuple[str, ...]] = {
    VenueCategory.DINING: ("Spice Garden Restaurant", "Ocean View Bistro", "Traditional Kitchen", "Local Flavors Cafe"),
    VenueCategory.CULTURE: ("Heritage Museum", "Art Gallery", "History Center", "Cultural Museum"),
    VenueCategory.NATURE: ("Botanical Gardens", "National Park", "Nature Reserve", "Wildlife Sanctuary"),
    VenueCategory.SHOPPING: ("Central Market", "Local Bazaar", "Artisan Quarter", "Night Market"),
    VenueCategory.NIGHTLIFE: ("Rooftop Lounge", "Beach Bar", "Jazz Club", "Cocktail Lounge"),
    VenueCategory.ATTRACTION: ("Local Landmark", "Heritage Site", "Cultural Center", "Scenic Viewpoint"),
}

FAILED_PLACE_STATUSES = frozenset({"OVER_QUERY_LIMIT", "REQUEST_DENIED", "INVALID_REQUEST", "UNKNOWN_ERROR"})


def category_from_place_types(types: list[str]) -> VenueCategory:
    type_set = set(types or [])
    for category, place_types in PLACE_TYPE_CATEGORIES:
        if type_set & place_types:
            return category
    return VenueCategory.ATTRACTION


class PlacesClient:
    """Adapter for Google Places text search with mock fallback."""

    def __init__(self, api_key: str = settings.google_places_api_key):
        self._api_key = api_key
        self._client: httpx.AsyncClient | None = None
        self._use_mock = not api_key

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.google_places_base_url,
                timeout=settings.http_timeout_seconds,
            )
        return self._client

    async def search(self, location_query: str, category_hints: list[str] | None = None) -> list[dict]:
        """Text search. Raises PlacesError when the API reports a failure status."""
        if self._use_mock:
            return self._generate_mock_places(location_query, category_hints)

        params: dict = {"query": location_query, "key": self._api_key}
        for hint in category_hints or []:
            if hint in CATEGORY_PLACE_TYPES:
                params["type"] = CATEGORY_PLACE_TYPES[hint]
                break

        try:
            client = await self._get_client()
            resp = await client.get("/textsearch/json", params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PlacesError(f"text search failed for {location_query!r}: {e}") from e

        status = data.get("status", "UNKNOWN_ERROR")
        if status in FAILED_PLACE_STATUSES:
            raise PlacesError(f"{status}: {data.get('error_message', 'no detail')}")
        return data.get("results", [])

    def _generate_mock_places(self, query: str, category_hints: list[str] | None) -> list[dict]:
        rng = _seeded_rng("places", query, ",".join(category_hints or []))
        q = query.lower()
        if any(w in q for w in ("restaurant", "food", "cafe", "dining")):
            category = VenueCategory.DINING
        elif any(w in q for w in ("museum", "cultural", "historical", "culture")):
            category = VenueCategory.CULTURE
        elif any(w in q for w in ("park", "garden", "outdoor", "nature")):
            category = VenueCategory.NATURE
        elif any(w in q for w in ("shopping", "market", "mall")):
            category = VenueCategory.SHOPPING
        elif any(w in q for w in ("bar", "club", "nightlife")):
            category = VenueCategory.NIGHTLIFE
        else:
            category = VenueCategory.ATTRACTION

        destination = q.split(" in ")[-1] if " in " in q else q
        base_lat, base_lng = destination_coordinates(destination)
        place_type = CATEGORY_PLACE_TYPES.get(category.value, "tourist_attraction")

        results = []
        for i, name in enumerate(_MOCK_PLACE_NAMES[category][: rng.randint(2, 4)]):
            results.append({
                "place_id": f"mock_{hashlib.md5(f'{query}{name}'.encode()).hexdigest()[:12]}",
                "name": name,
                "types": [place_type, "point_of_interest"],
                "geometry": {"location": {
                    "lat": round(base_lat + (rng.random() - 0.5) * 0.02, 6),
                    "lng": round(base_lng + (rng.random() - 0.5) * 0.02, 6),
                }},
                "rating": round(4.0 + rng.random(), 1),
                "user_ratings_total": rng.randint(50, 550),
                "price_level": rng.randint(1, 3),
                "formatted_address": f"{i + 1} Main Street, {destination.title()}",
                "photos": [{"photo_reference": "mock"}] if rng.random() > 0.3 else [],
                "mock": True,
            })
        return results

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


def venue_from_place(place: dict, destination: str = "") -> Venue:
    """Normalize a place-search result into a Venue."""
    loc = (place.get("geometry") or {}).get("location") or {}
    location = None
    if "lat" in loc and "lng" in loc:
        location = Coordinates(lat=float(loc["lat"]), lng=float(loc["lng"]))

    price_level = place.get("price_level")
    price_range = PriceRange(level=int(price_level)) if price_level else None

    rating = float(place.get("rating") or 0)
    ratings_total = int(place.get("user_ratings_total") or 0)
    category = category_from_place_types(place.get("types", []))

    venue = Venue(
        name=place.get("name", "").strip(),
        category=category,
        location=location,
        price_range=price_range,
        description=place.get("editorial_summary", {}).get("overview", "")
        or f"A popular {category.value} spot in {destination}".strip(),
    )
    venue.add_source(DataSource.GOOGLE_PLACES, place)

    qs = venue.quality_signals
    qs.has_real_location = location is not None and location.is_valid()
    qs.has_valid_business_info = bool(place.get("formatted_address") or place.get("place_id"))
    qs.has_user_ratings = ratings_total > 0
    qs.mention_frequency = min(ratings_total // 100 + 1, 10) if ratings_total else 0
    if rating:
        qs.sentiment_score = max(min((rating - 3.0) / 2.0, 1.0), -1.0)

    venue.metadata.update({
        "place_id": place.get("place_id"),
        "address": place.get("formatted_address"),
        "rating": rating,
        "user_ratings_total": ratings_total,
        "popularity": min(ratings_total / 25, 40),
        "photo_count": len(place.get("photos") or []),
        "mock": bool(place.get("mock")),
    })
    venue.update_confidence_score()
    return venue


# ---------- AI enhancement ----------

ENHANCE_SYSTEM_PROMPT = (
    "You improve travel venue descriptions. Return JSON of the form "
    '{"venues": [{"name": str, "description": str, "short_description": str}]} '
    "with exactly one entry per input venue, in the same order, keeping every name unchanged."
)


def guard_enhancement(original: list[Venue], enhanced: list[Venue]) -> list[Venue]:
    """Accept enhanced venues only if they preserve the original identities."""
    if len(enhanced) != len(original):
        logger.warning(f"Enhancement changed venue count ({len(original)} -> {len(enhanced)}), reverting")
        return original

    names = [(v.name or "").strip().lower() for v in enhanced]
    if len(set(names)) != len(names):
        logger.warning("Enhancement produced duplicate venue names, reverting")
        return original

    known = {(v.name or "").strip().lower() for v in original}
    unknown = [n for n in names if n not in known]
    if unknown:
        logger.warning(f"Enhancement introduced unknown venues {unknown}, reverting")
        return original

    return enhanced


class VenueEnhancer:
    """Rewrites venue descriptions with an LLM, guarded by identity checks."""

    def __init__(self, client: LLMClient = llm_client, enabled: bool = settings.ai_enhancement_enabled):
        self._client = client
        self._enabled = enabled

    @property
    def active(self) -> bool:
        return self._enabled and self._client.available

    async def enhance(self, venues: list[Venue], context: dict) -> list[Venue]:
        if not self.active or not venues:
            return venues

        lines = "\n".join(f"- {v.name} ({v.category.value}): {v.description}" for v in venues)
        user = f"Destination: {context.get('destination', '')}\nVenues:\n{lines}"
        try:
            payload = await self._client.complete_json(ENHANCE_SYSTEM_PROMPT, user)
        except Exception as e:
            logger.warning(f"AI enhancement failed, keeping original venues: {e}")
            return venues

        items = payload.get("venues", []) if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            return venues

        enhanced = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                logger.warning("AI enhancement returned a malformed entry, keeping original venues")
                return venues
            venue = copy.deepcopy(venues[i]) if i < len(venues) else Venue(name="")
            venue.name = str(item.get("name") or venue.name)
            venue.description = str(item.get("description") or venue.description)
            venue.short_description = str(item.get("short_description") or venue.short_description)
            venue.add_source(DataSource.AI_ENHANCED, {"enhanced": True})
            enhanced.append(venue)

        return guard_enhancement(venues, enhanced)


# Singletons
reddit_client = RedditClient()
places_client = PlacesClient()
venue_enhancer = VenueEnhancer()
