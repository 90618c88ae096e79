"""Discovery engine — fans out to venue sources, merges, ranks and diversifies.

Stages:
  A. Concurrent fan-out over enabled sources, bounded by a semaphore. Each
     source is isolated: a failure is recorded, not propagated.
  B. Merge on normalized name + coordinates rounded to ~100m. Candidates are
     ordered by (priority, confidence, source) before merging so the winner of
     a collision never depends on arrival order.
  C. Composite rank from popularity, analysis score, rating and source priority.
  D. Per-category caps so no single category crowds out the rest.

Only raises DiscoveryError when every enabled source failed.
"""

import asyncio
import logging
import math
import re
import time
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Protocol

from venuescout.config import settings
from venuescout.data.curated_venues import CURATED_VENUES, match_destination
from venuescout.models.venue import DataSource, PriceRange, Venue, VenueCategory
from venuescout.schemas.recommendation import RecommendationRequest, extract_categories
from venuescout.services.config import discovery_config
from venuescout.services.entity_extractor import (
    EntityExtractor,
    VenueMention,
    aggregate_mentions,
    entity_extractor,
    parse_post,
)
from venuescout.services.errors import DiscoveryError
from venuescout.services.fallback_manager import venue_from_curated
from venuescout.services.sources import (
    PlaceSearchSource,
    RawTextSource,
    RedditClient,
    places_client,
    reddit_client,
    venue_from_place,
)

logger = logging.getLogger(__name__)

priorities = discovery_config.priorities
rank = discovery_config.rank


# ---------- Helpers ----------


def normalized_key_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (name or "").lower())


def source_priority(venue: Venue) -> float:
    source = venue.primary_source
    return priorities.get(source.value if source else None)


def venue_from_mention(mention: VenueMention, destination: str = "") -> Venue:
    """Normalize aggregated social mentions into a Venue."""
    price_range = None
    amounts = [p.amount for p in mention.prices]
    if amounts:
        price_range = PriceRange(min=min(amounts), max=max(amounts), level=min(4, 1 + int(sum(amounts) / len(amounts) // 25)))

    venue = Venue(
        name=mention.name,
        category=mention.category_hint or VenueCategory.ATTRACTION,
        price_range=price_range,
        description=mention.contexts[0] if mention.contexts else f"Recommended by travellers visiting {destination}",
    )
    venue.add_source(DataSource.REDDIT, {
        "mention_count": mention.mention_count,
        "post_ids": mention.post_ids,
        "contexts": mention.contexts[:3],
        "addresses": mention.addresses,
    })
    qs = venue.quality_signals
    qs.mention_frequency = mention.mention_count
    qs.sentiment_score = max(-1.0, min(1.0, mention.avg_sentiment))
    qs.passes_name_validation = True
    qs.has_recent_activity = True
    qs.has_valid_business_info = bool(mention.addresses)
    venue.metadata.update({
        "popularity": float(min(mention.mention_count * 5, rank.popularity_max)),
        "analysis_score": round(mention.best_confidence * 100, 1),
        "mention_count": mention.mention_count,
    })
    venue.update_confidence_score()
    return venue


# ---------- Sources ----------


class VenueSource(Protocol):
    name: str

    async def discover(self, request: RecommendationRequest) -> list[Venue]: ...


class PlaceSearchVenueSource:
    name = DataSource.GOOGLE_PLACES.value

    def __init__(self, places: PlaceSearchSource = places_client, max_queries: int = 3):
        self.places = places
        self.max_queries = max_queries

    async def discover(self, request: RecommendationRequest) -> list[Venue]:
        categories = extract_categories(request)
        queries = [f"{c} in {request.destination}" for c in categories][: self.max_queries]
        if not queries:
            queries = [f"things to do in {request.destination}"]

        venues: list[Venue] = []
        for query in queries:
            places = await self.places.search(query, categories)
            venues.extend(venue_from_place(p, request.destination) for p in places if p.get("name"))
        return venues


class SocialTextVenueSource:
    name = DataSource.REDDIT.value

    def __init__(
        self,
        text_source: RawTextSource = reddit_client,
        extractor: EntityExtractor = entity_extractor,
        threshold: float = settings.extraction_confidence_threshold,
    ):
        self.text_source = text_source
        self.extractor = extractor
        self.threshold = threshold

    async def discover(self, request: RecommendationRequest) -> list[Venue]:
        queries = RedditClient.generate_queries(request.destination, extract_categories(request))
        posts = []
        for query in queries:
            raw_posts = await self.text_source.fetch(query)
            posts.extend(parse_post(p, self.extractor) for p in raw_posts)
        mentions = aggregate_mentions(posts, self.threshold)
        return [venue_from_mention(m, request.destination) for m in mentions]


class CuratedVenueSource:
    name = DataSource.CURATED.value

    def __init__(self, table: dict[str, list[dict]] = CURATED_VENUES):
        self.table = table

    async def discover(self, request: RecommendationRequest) -> list[Venue]:
        key = match_destination(request.destination, self.table)
        if key is None:
            return []
        return [venue_from_curated(row) for row in self.table[key]]


# ---------- Engine ----------


@dataclass
class DiscoveryResult:
    venues: list[Venue] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


class DiscoveryEngine:
    def __init__(
        self,
        sources: list[VenueSource] | None = None,
        max_concurrency: int = settings.discovery_max_concurrency,
        final_limit: int = settings.discovery_final_limit,
        max_per_source: int = settings.max_venues_per_source,
    ):
        self.sources = sources if sources is not None else [
            PlaceSearchVenueSource(),
            SocialTextVenueSource(),
            CuratedVenueSource(),
        ]
        self.max_concurrency = max_concurrency
        self.final_limit = final_limit
        self.max_per_source = max_per_source

    async def discover(self, request: RecommendationRequest) -> DiscoveryResult:
        started = time.monotonic()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        outcomes = await asyncio.gather(*(self._run_source(s, request, semaphore) for s in self.sources))

        batches: list[tuple[str, list[Venue]]] = []
        errors: dict[str, str] = {}
        for name, venues, error in outcomes:
            if error is not None:
                errors[name] = error
            else:
                batches.append((name, venues[: self.max_per_source]))

        if self.sources and len(errors) == len(self.sources):
            logger.error(f"Discovery failed for {request.destination}: every source failed")
            raise DiscoveryError(errors)

        merged = self.merge(batches)
        for venue in merged:
            venue.metadata["discovery_score"] = self.composite_score(venue)
        final = self.diversify(merged, self.final_limit)

        metadata = {
            "source_counts": {name: len(v) for name, v in batches},
            "failed_sources": errors,
            "merged_count": len(merged),
            "final_count": len(final),
            "quality": self.quality_metrics(final),
            "processing_time_ms": round((time.monotonic() - started) * 1000, 2),
        }
        logger.info(f"Discovery for {request.destination}: {len(merged)} merged, {len(final)} selected")
        return DiscoveryResult(venues=final, metadata=metadata)

    async def _run_source(
        self, source: VenueSource, request: RecommendationRequest, semaphore: asyncio.Semaphore
    ) -> tuple[str, list[Venue], str | None]:
        async with semaphore:
            try:
                venues = await source.discover(request)
                return source.name, list(venues), None
            except Exception as e:
                logger.warning(f"Discovery source {source.name} failed: {e}")
                return source.name, [], str(e)

    # ----- stage B -----

    def merge(self, batches: list[tuple[str, list[Venue]]]) -> list[Venue]:
        candidates = [(name, v) for name, venues in batches for v in venues if v.name]
        # Deterministic processing order: best candidate of each name first
        candidates.sort(key=lambda nv: (
            normalized_key_name(nv[1].name),
            -source_priority(nv[1]),
            -nv[1].confidence_score,
            nv[0],
        ))

        clusters: dict[str, list[list[Venue]]] = defaultdict(list)
        for _, venue in candidates:
            name_key = normalized_key_name(venue.name)
            coord_key = self._coord_key(venue)
            target = None
            for cluster in clusters[name_key]:
                existing = self._coord_key(cluster[0])
                if coord_key is None or existing is None or coord_key == existing:
                    target = cluster
                    break
            if target is None:
                clusters[name_key].append([venue])
            else:
                target.append(venue)

        merged: list[Venue] = []
        for group in clusters.values():
            for cluster in group:
                merged.append(self._fold(cluster))
        return merged

    @staticmethod
    def _coord_key(venue: Venue) -> tuple[float, float] | None:
        if venue.location is None or not venue.location.is_valid():
            return None
        p = rank.coordinate_precision
        return round(venue.location.lat, p), round(venue.location.lng, p)

    @staticmethod
    def _fold(cluster: list[Venue]) -> Venue:
        winner = cluster[0]
        seen_sources = {s.source_type for s in winner.sources}
        for other in cluster[1:]:
            for record in other.sources:
                if record.source_type not in seen_sources:
                    winner.sources.append(record)
                    seen_sources.add(record.source_type)
            if winner.location is None and other.location is not None:
                winner.location = other.location
                winner.quality_signals.has_real_location = other.quality_signals.has_real_location
        if len(seen_sources) > 1:
            winner.quality_signals.cross_source_verified = True
            winner.metadata["merged_sources"] = sorted(s.value for s in seen_sources)
            winner.update_confidence_score()
        return winner

    # ----- stage C -----

    @staticmethod
    def composite_score(venue: Venue) -> float:
        meta = venue.metadata
        score = (
            min(float(meta.get("popularity") or 0), rank.popularity_max)
            + float(meta.get("analysis_score") or 0) / 100 * rank.analysis_max
            + float(meta.get("rating") or 0) / rank.rating_scale * rank.rating_max
            + source_priority(venue) * rank.source_priority_max
        )
        return round(min(max(score, 0.0), 100.0), 2)

    # ----- stage D -----

    @staticmethod
    def diversify(venues: list[Venue], limit: int) -> list[Venue]:
        if not venues or limit <= 0:
            return []

        ordered = sorted(venues, key=lambda v: (-v.metadata.get("discovery_score", 0.0), v.name.lower()))
        categories = {v.category for v in ordered}
        per_category = math.ceil(len(ordered) / len(categories))

        selected: list[Venue] = []
        counts: Counter = Counter()
        for venue in ordered:
            if len(selected) >= limit:
                break
            if counts[venue.category] < per_category:
                selected.append(venue)
                counts[venue.category] += 1

        # Caps relax for whatever slots the capped pass left open
        if len(selected) < limit:
            chosen = {id(v) for v in selected}
            for venue in ordered:
                if len(selected) >= limit:
                    break
                if id(venue) not in chosen:
                    selected.append(venue)

        return sorted(selected, key=lambda v: (-v.metadata.get("discovery_score", 0.0), v.name.lower()))

    @staticmethod
    def quality_metrics(venues: list[Venue]) -> dict:
        ratings = [float(v.metadata["rating"]) for v in venues if v.metadata.get("rating")]
        return {
            "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
            "with_photos": sum(1 for v in venues if v.metadata.get("photo_count")),
            "with_reviews": sum(1 for v in venues if v.metadata.get("user_ratings_total")),
            "categories": sorted({v.category.value for v in venues}),
        }


# Singleton
discovery_engine = DiscoveryEngine()
