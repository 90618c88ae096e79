"""Recommendation engine — the public entry point for venue recommendations.

Flow: result cache → staged pipeline → (on failure or empty output) fallback
manager → structured response. Pipeline stages:

  social_data               collect travel posts (at most 5 queries)
  venue_extraction          extract + aggregate venue mentions from posts
  venue_discovery           merge social venues with place search + curated data
  quality_control           validate/score, keep medium and high tiers
  ai_enhancement            optional guarded description rewrite
  recommendation_generation reasons, tags and time slots per venue
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from venuescout.config import settings
from venuescout.models.recommendation import Recommendation
from venuescout.models.venue import DataSource, Venue
from venuescout.schemas.recommendation import RecommendationRequest, extract_categories
from venuescout.services.adaptive_cache import AdaptiveCache, CachePriority, adaptive_cache
from venuescout.services.config import CATEGORY_TIME_SLOTS, DEFAULT_TIME_SLOTS, discovery_config
from venuescout.services.discovery_engine import (
    CuratedVenueSource,
    DiscoveryEngine,
    PlaceSearchVenueSource,
    venue_from_mention,
)
from venuescout.services.entity_extractor import EntityExtractor, ParsedPost, aggregate_mentions, entity_extractor, parse_post
from venuescout.services.errors import StageError
from venuescout.services.fallback_manager import FallbackManager, FallbackResult, fallback_manager
from venuescout.services.pipeline import PipelineBuilder, PipelineStage, RecommendationPipeline
from venuescout.services.quality_controller import (
    QualityController,
    diversity_check,
    duplicate_check,
    quality_controller,
    quality_distribution_check,
)
from venuescout.services.sources import (
    AIEnhancer,
    PlaceSearchSource,
    RawTextSource,
    RedditClient,
    places_client,
    reddit_client,
    guard_enhancement,
    venue_enhancer,
)

logger = logging.getLogger(__name__)

MAX_SOCIAL_QUERIES = 5
RECOMMENDATION_CACHE_TAG = "recommendations"

ESTIMATED_DURATIONS: dict[str, str] = {
    "dining": "1-2 hours",
    "culture": "2-3 hours",
    "nature": "2-4 hours",
    "nightlife": "2-3 hours",
    "shopping": "1-2 hours",
    "wellness": "1-3 hours",
}


@dataclass
class RecommendationContext:
    """State handed from stage to stage. Stages return a new copy."""

    request: RecommendationRequest
    posts: list[ParsedPost] = field(default_factory=list)
    venues: list[Venue] = field(default_factory=list)
    notes: dict[str, Any] = field(default_factory=dict)


@dataclass
class RecommendationResponse:
    success: bool
    data: list[Recommendation] = field(default_factory=list)
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "data": [r.to_dict() for r in self.data],
            "error": self.error,
            "metadata": self.metadata,
        }


# ---------- Stages ----------


class SocialDataStage(PipelineStage):
    name = "social_data"

    def __init__(self, text_source: RawTextSource = reddit_client, **kwargs):
        super().__init__(**kwargs)
        self.text_source = text_source

    async def execute(self, ctx: RecommendationContext) -> RecommendationContext:
        queries = RedditClient.generate_queries(ctx.request.destination, extract_categories(ctx.request), MAX_SOCIAL_QUERIES)
        raw_posts: list[dict] = []
        for query in queries:
            raw_posts.extend(await self.text_source.fetch(query))

        seen: set[str] = set()
        posts = []
        for raw in raw_posts:
            post_id = str(raw.get("id") or "")
            if post_id and post_id in seen:
                continue
            seen.add(post_id)
            posts.append(raw)
        logger.info(f"Collected {len(posts)} posts for {ctx.request.destination} from {len(queries)} queries")
        return replace(ctx, notes={**ctx.notes, "raw_posts": posts})


class VenueExtractionStage(PipelineStage):
    name = "venue_extraction"

    def __init__(self, extractor: EntityExtractor = entity_extractor,
                 threshold: float = settings.extraction_confidence_threshold, **kwargs):
        super().__init__(**kwargs)
        self.extractor = extractor
        self.threshold = threshold

    async def execute(self, ctx: RecommendationContext) -> RecommendationContext:
        raw_posts = ctx.notes.get("raw_posts") or []
        if not raw_posts:
            raise StageError(self.name, "No posts available for venue extraction")
        posts = [parse_post(p, self.extractor) for p in raw_posts]
        mentions = aggregate_mentions(posts, self.threshold)
        venues = [venue_from_mention(m, ctx.request.destination) for m in mentions]
        logger.info(f"Extracted {len(venues)} venues from {len(posts)} posts")
        return replace(ctx, posts=posts, venues=venues)


class _ExtractedVenueSource:
    """Feeds already-extracted social venues into the discovery merge."""

    name = DataSource.REDDIT.value

    def __init__(self, venues: list[Venue]):
        self.venues = venues

    async def discover(self, request: RecommendationRequest) -> list[Venue]:
        return list(self.venues)


class VenueDiscoveryStage(PipelineStage):
    name = "venue_discovery"

    def __init__(self, places: PlaceSearchSource = places_client, include_curated: bool = True, **kwargs):
        super().__init__(**kwargs)
        self.places = places
        self.include_curated = include_curated

    async def execute(self, ctx: RecommendationContext) -> RecommendationContext:
        sources = [_ExtractedVenueSource(ctx.venues), PlaceSearchVenueSource(self.places)]
        if self.include_curated:
            sources.append(CuratedVenueSource())
        result = await DiscoveryEngine(sources=sources).discover(ctx.request)
        return replace(ctx, venues=result.venues, notes={**ctx.notes, "discovery": result.metadata})


class QualityControlStage(PipelineStage):
    name = "quality_control"

    def __init__(self, controller: QualityController = quality_controller,
                 threshold: float = settings.quality_threshold, **kwargs):
        super().__init__(**kwargs)
        self.controller = controller
        self.threshold = threshold

    async def execute(self, ctx: RecommendationContext) -> RecommendationContext:
        batch = self.controller.process_batch(ctx.venues)
        kept = [v for v in batch.high_quality + batch.medium_quality if v.confidence_score >= self.threshold]
        if not kept:
            raise StageError(self.name, f"No venues passed quality control ({batch.stats['total']} checked)")
        return replace(ctx, venues=kept, notes={**ctx.notes, "quality": batch.stats})


class AIEnhancementStage(PipelineStage):
    name = "ai_enhancement"

    def __init__(self, enhancer: AIEnhancer = venue_enhancer, **kwargs):
        super().__init__(**kwargs)
        self.enhancer = enhancer

    async def execute(self, ctx: RecommendationContext) -> RecommendationContext:
        venues = await self.enhancer.enhance(ctx.venues, {"destination": ctx.request.destination})
        return replace(ctx, venues=guard_enhancement(ctx.venues, venues))


class RecommendationGenerationStage(PipelineStage):
    name = "recommendation_generation"

    async def execute(self, ctx: RecommendationContext) -> list[Recommendation]:
        wanted = set(extract_categories(ctx.request))
        recs = [build_recommendation(v, wanted) for v in ctx.venues]
        recs.sort(key=lambda r: (-r.score, r.venue.name.lower()))
        return recs


def build_recommendation(venue: Venue, wanted_categories: set[str] | None = None) -> Recommendation:
    rec = Recommendation.from_venue(venue)
    qs = venue.quality_signals
    category = venue.category.value

    if venue.has_source(DataSource.REDDIT):
        rec.add_reason(f"Mentioned {qs.mention_frequency} time(s) by travellers")
        rec.add_tag("reddit-recommended")
    if qs.cross_source_verified:
        rec.add_reason("Verified across multiple sources")
        rec.add_tag("verified")
    rating = venue.metadata.get("rating")
    if rating:
        rec.add_reason(f"Rated {rating:.1f}/5")
        if rating >= 4.5:
            rec.add_tag("highly-rated")
    if venue.has_source(DataSource.CURATED):
        rec.add_reason("Hand-picked local favourite")
        rec.add_tag("curated")
    if qs.sentiment_score > 0.3:
        rec.add_reason("Consistently positive reviews")
    if venue.is_high_quality():
        rec.add_tag("high-confidence")
    if venue.price_range and venue.price_range.level <= 1:
        rec.add_tag("budget-friendly")
    if wanted_categories and category in wanted_categories:
        rec.add_tag("matches-preferences")
    rec.add_tag(category)

    for slot in CATEGORY_TIME_SLOTS.get(category, DEFAULT_TIME_SLOTS):
        rec.add_time_slot(slot)
    rec.estimated_duration = ESTIMATED_DURATIONS.get(category, "1-2 hours")
    rec.best_time_to_visit = rec.time_slots[0] if rec.time_slots else None
    return rec


# ---------- Stage fallbacks ----------


async def _skip_social_data(ctx: RecommendationContext, error: str) -> RecommendationContext:
    logger.warning(f"Social data unavailable, continuing without it: {error}")
    return replace(ctx, notes={**ctx.notes, "raw_posts": [], "social_error": error})


async def _skip_extraction(ctx: RecommendationContext, error: str) -> RecommendationContext:
    return replace(ctx, venues=[], notes={**ctx.notes, "extraction_error": error})


async def _skip_enhancement(ctx: RecommendationContext, error: str) -> RecommendationContext:
    return ctx


def build_default_pipeline(
    text_source: RawTextSource = reddit_client,
    places: PlaceSearchSource = places_client,
    enhancer: AIEnhancer = venue_enhancer,
    controller: QualityController = quality_controller,
) -> RecommendationPipeline:
    return (
        PipelineBuilder()
        .add_stage(SocialDataStage(text_source))
        .add_stage(VenueExtractionStage())
        .add_stage(VenueDiscoveryStage(places))
        .add_stage(QualityControlStage(controller))
        .add_stage(AIEnhancementStage(enhancer))
        .add_stage(RecommendationGenerationStage())
        .add_fallback(SocialDataStage.name, _skip_social_data)
        .add_fallback(VenueExtractionStage.name, _skip_extraction)
        .add_fallback(AIEnhancementStage.name, _skip_enhancement)
        .add_quality_checker(duplicate_check)
        .add_quality_checker(diversity_check)
        .add_quality_checker(quality_distribution_check)
        .build()
    )


# ---------- Engine ----------


class RecommendationEngine:
    def __init__(
        self,
        pipeline: RecommendationPipeline | None = None,
        fallback: FallbackManager = fallback_manager,
        cache: AdaptiveCache = adaptive_cache,
        cache_ttl: float = settings.recommendation_cache_ttl_seconds,
    ):
        self.pipeline = pipeline or build_default_pipeline()
        self.fallback = fallback
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.requests = 0
        self.cache_hits = 0
        self.fallbacks = 0
        self.failures = 0

    async def generate_recommendations(self, request: RecommendationRequest) -> RecommendationResponse:
        self.requests += 1
        key = request.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            logger.info(f"Serving cached recommendations for {request.destination}")
            return RecommendationResponse(success=True, data=cached, metadata={"cached": True, "cache_key": key})

        result = await self.pipeline.execute(RecommendationContext(request=request))
        if result.success and result.data:
            self.cache.set(
                key, result.data, ttl=self.cache_ttl, priority=CachePriority.MEDIUM,
                tags=(RECOMMENDATION_CACHE_TAG, request.destination.lower()), compress=False,
            )
            return RecommendationResponse(
                success=True,
                data=result.data,
                metadata={**result.metadata, "cached": False, "source": "pipeline"},
            )

        failed_at = result.metadata.get("failed_at") or "quality_filter"
        pipeline_error = result.error or "Pipeline produced no recommendations"
        fb = await self.fallback.execute_fallback(request, failed_at)
        if fb.venues:
            self.fallbacks += 1
            recs = [self._fallback_recommendation(v, fb) for v in fb.venues]
            return RecommendationResponse(
                success=True,
                data=recs,
                metadata={
                    "cached": False,
                    "source": "fallback",
                    "failed_at": failed_at,
                    "pipeline_error": pipeline_error,
                    "fallback": fb.to_dict(),
                    "pipeline": result.metadata,
                },
            )

        self.failures += 1
        logger.error(f"No recommendations for {request.destination}: {pipeline_error}")
        return RecommendationResponse(
            success=False,
            error=pipeline_error,
            metadata={"failed_at": failed_at, "fallback": fb.to_dict(), "pipeline": result.metadata},
        )

    @staticmethod
    def _fallback_recommendation(venue: Venue, fb: FallbackResult) -> Recommendation:
        rec = build_recommendation(venue)
        rec.add_tag("fallback")
        rec.add_tag(f"fallback-level-{fb.level}")
        rec.add_reason(f"Suggested from {fb.source}")
        return rec

    def get_metrics(self) -> dict:
        metrics = self.pipeline.get_metrics()
        metrics["engine"] = {
            "requests": self.requests,
            "cache_hits": self.cache_hits,
            "fallbacks": self.fallbacks,
            "failures": self.failures,
            "quality_tiers": {"high": discovery_config.tiers.high, "medium": discovery_config.tiers.medium},
        }
        return metrics

    def reset(self) -> dict:
        cleared = self.cache.clear_by_tags([RECOMMENDATION_CACHE_TAG])
        self.pipeline.reset_metrics()
        self._reset_counters()
        logger.info(f"Recommendation engine reset ({cleared} cached results cleared)")
        return {"cleared_cache_entries": cleared}


# Singleton
recommendation_engine = RecommendationEngine()
