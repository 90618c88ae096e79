"""Discovery and quality configuration — single source for all thresholds."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class QualityTiers:
    """Composite score cut-offs (0-100 scale)."""
    high: float = 70.0
    medium: float = 40.0


@dataclass(frozen=True)
class ScorerCaps:
    """Point contributions of the default quality scorers."""
    mention_per_count: float = 10.0
    mention_max: float = 30.0
    sentiment_multiplier: float = 20.0
    sentiment_max: float = 20.0
    verified_location: float = 25.0
    business_info: float = 15.0
    cross_source: float = 10.0


@dataclass(frozen=True)
class ExtractionDeltas:
    """Confidence adjustments applied on top of a rule's base confidence."""
    business_keyword: float = 0.15
    possessive: float = 0.10
    positive_context: float = 0.10
    reporting_context: float = -0.15
    excessive_length: float = -0.20
    context_window: int = 60        # chars either side of a match
    min_name_length: int = 3
    max_name_length: int = 40
    long_name_words: int = 5        # more words than this looks like a fragment
    long_name_chars: int = 30
    default_threshold: float = 0.4


@dataclass(frozen=True)
class SourcePriorities:
    """Static merge priority per source. Higher wins on dedup collision."""
    google_places: float = 1.0
    reddit: float = 0.8
    curated: float = 0.6
    fallback: float = 0.4
    unknown: float = 0.5

    def get(self, source: str | None) -> float:
        if not source:
            return self.unknown
        return getattr(self, source, self.unknown)


@dataclass(frozen=True)
class RankCaps:
    """Discovery composite-rank components (sum to 100)."""
    popularity_max: float = 40.0
    analysis_max: float = 30.0
    rating_max: float = 20.0
    source_priority_max: float = 10.0
    rating_scale: float = 5.0
    coordinate_precision: int = 3   # ~100m


@dataclass(frozen=True)
class CacheEviction:
    """Weights used by the adaptive cache eviction score."""
    priority_weight: float = 25.0
    access_weight: float = 5.0
    access_cap: float = 50.0
    recency_ceiling: float = 100.0
    age_cap: float = 50.0
    size_divisor: float = 1000.0
    size_cap: float = 25.0
    target_occupancy: float = 0.9
    default_entry_size: int = 1000
    optimize_high_access: int = 10
    optimize_medium_access: int = 5
    optimize_recent_seconds: float = 300.0


@dataclass(frozen=True)
class PipelineChecks:
    """Thresholds for the advisory quality checkers."""
    min_categories: int = 3
    min_high_quality_pct: float = 30.0


@dataclass(frozen=True)
class DiscoveryConfig:
    """Top-level config aggregating all sub-configs."""
    tiers: QualityTiers = field(default_factory=QualityTiers)
    scorers: ScorerCaps = field(default_factory=ScorerCaps)
    extraction: ExtractionDeltas = field(default_factory=ExtractionDeltas)
    priorities: SourcePriorities = field(default_factory=SourcePriorities)
    rank: RankCaps = field(default_factory=RankCaps)
    eviction: CacheEviction = field(default_factory=CacheEviction)
    checks: PipelineChecks = field(default_factory=PipelineChecks)


# Singleton
discovery_config = DiscoveryConfig()


# Preference words that map onto venue categories
PREFERENCE_CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "dining": ("food", "dining", "restaurant", "eat", "cuisine"),
    "culture": ("culture", "art", "museum", "history", "heritage"),
    "nature": ("nature", "outdoor", "park", "hiking", "beach"),
    "shopping": ("shopping", "market", "shop"),
    "nightlife": ("nightlife", "bar", "club", "drinks"),
    "wellness": ("wellness", "spa", "yoga", "relax"),
    "accommodation": ("hotel", "stay", "accommodation", "resort"),
}

# Time slots a category is usually visited in
CATEGORY_TIME_SLOTS: dict[str, tuple[str, ...]] = {
    "dining": ("afternoon", "evening"),
    "culture": ("morning", "afternoon"),
    "nature": ("morning", "afternoon"),
    "nightlife": ("evening",),
    "shopping": ("afternoon",),
}
DEFAULT_TIME_SLOTS: tuple[str, ...] = ("morning", "afternoon")
