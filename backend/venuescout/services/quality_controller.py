"""Quality controller — validates venues and scores them 0-100.

Validators and scorers are named, pluggable callables:

  validator(venue) -> error message | None
  scorer(venue)    -> points

All validators always run (failures are collected, not short-circuited) and a
validator that raises is recorded as a warning. A scorer that raises simply
contributes 0. The composite score is clamped to [0, 100] and mapped to a tier.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from venuescout.models.venue import Venue, VenueCategory
from venuescout.services.config import discovery_config
from venuescout.services.entity_extractor import entity_extractor

logger = logging.getLogger(__name__)

Validator = Callable[[Venue], "str | None"]
Scorer = Callable[[Venue], float]

tiers = discovery_config.tiers
caps = discovery_config.scorers
checks = discovery_config.checks


# ---------- Data structures ----------


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    details: dict[str, bool] = field(default_factory=dict)  # validator name -> passed


@dataclass
class QualityScore:
    score: float
    breakdown: dict[str, float] = field(default_factory=dict)
    tier: str = "low"


@dataclass
class VenueAssessment:
    venue: Venue
    validation: ValidationResult
    quality: QualityScore


@dataclass
class BatchResult:
    processed: list[VenueAssessment] = field(default_factory=list)
    valid: list[Venue] = field(default_factory=list)
    invalid: list[Venue] = field(default_factory=list)
    high_quality: list[Venue] = field(default_factory=list)
    medium_quality: list[Venue] = field(default_factory=list)
    low_quality: list[Venue] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)


@dataclass
class QualityCheckResult:
    name: str
    passed: bool
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"name": self.name, "passed": self.passed, "message": self.message, "details": self.details}


def tier_for(score: float) -> str:
    if score >= tiers.high:
        return "high"
    if score >= tiers.medium:
        return "medium"
    return "low"


# ---------- Default validators ----------


def validate_name(venue: Venue) -> str | None:
    name = (venue.name or "").strip()
    if not name:
        return "Venue name is missing"
    if not entity_extractor.is_structurally_valid(name):
        return f'Venue name "{name}" does not look like a place name'
    return None


def validate_category(venue: Venue) -> str | None:
    if VenueCategory.parse(venue.category) is None:
        return f"Unknown category: {venue.category}"
    return None


def validate_location(venue: Venue) -> str | None:
    if venue.location is not None and not venue.location.is_valid():
        return f"Invalid coordinates: {venue.location.lat}, {venue.location.lng}"
    return None


def validate_business_pattern(venue: Venue) -> str | None:
    if not entity_extractor.is_business_like((venue.name or "").strip()):
        return f'Venue name "{venue.name}" does not match a business pattern'
    return None


def validate_sources(venue: Venue) -> str | None:
    if not venue.sources:
        return "Venue has no sources"
    return None


# ---------- Default scorers ----------


def score_mention_frequency(venue: Venue) -> float:
    return min(venue.quality_signals.mention_frequency * caps.mention_per_count, caps.mention_max)


def score_sentiment(venue: Venue) -> float:
    return min(max(venue.quality_signals.sentiment_score * caps.sentiment_multiplier, 0.0), caps.sentiment_max)


def score_location(venue: Venue) -> float:
    qs = venue.quality_signals
    if qs.has_real_location and (venue.location is None or venue.location.is_valid()):
        return caps.verified_location
    return 0.0


def score_business_info(venue: Venue) -> float:
    return caps.business_info if venue.quality_signals.has_valid_business_info else 0.0


def score_cross_source(venue: Venue) -> float:
    return caps.cross_source if venue.quality_signals.cross_source_verified else 0.0


# ---------- Controller ----------


class QualityController:
    def __init__(self, strict_mode: bool = False, enable_caching: bool = False):
        self.strict_mode = strict_mode
        self.enable_caching = enable_caching
        self._cache: dict[str, tuple[ValidationResult, QualityScore]] = {}

        self.validators: dict[str, Validator] = {
            "name": validate_name,
            "category": validate_category,
            "location": validate_location,
            "business_pattern": validate_business_pattern,
            "sources": validate_sources,
        }
        self.scorers: dict[str, Scorer] = {
            "mention_frequency": score_mention_frequency,
            "sentiment": score_sentiment,
            "location": score_location,
            "business_info": score_business_info,
            "cross_source": score_cross_source,
        }

    # ----- registry -----

    def add_validator(self, name: str, fn: Validator) -> "QualityController":
        self.validators[name] = fn
        return self

    def remove_validator(self, name: str) -> bool:
        return self.validators.pop(name, None) is not None

    def add_scorer(self, name: str, fn: Scorer) -> "QualityController":
        self.scorers[name] = fn
        return self

    def remove_scorer(self, name: str) -> bool:
        return self.scorers.pop(name, None) is not None

    def clear_cache(self) -> None:
        self._cache.clear()

    # ----- single venue -----

    def validate(self, venue: Venue) -> ValidationResult:
        result = ValidationResult(valid=True)
        for name, fn in self.validators.items():
            try:
                error = fn(venue)
            except Exception as e:
                result.warnings.append(f"Validator {name} failed: {e}")
                result.details[name] = False
                continue

            if name == "business_pattern" and not self.strict_mode:
                # Advisory outside strict mode
                if error:
                    result.warnings.append(error)
                result.details[name] = error is None
                continue

            result.details[name] = error is None
            if error:
                result.errors.append(error)

        result.valid = not result.errors
        return result

    def score(self, venue: Venue) -> QualityScore:
        breakdown: dict[str, float] = {}
        for name, fn in self.scorers.items():
            try:
                breakdown[name] = float(fn(venue))
            except Exception as e:
                logger.warning(f"Scorer {name} failed for {getattr(venue, 'name', '?')}: {e}")
                breakdown[name] = 0.0

        total = min(max(sum(breakdown.values()), 0.0), 100.0)
        return QualityScore(score=round(total, 2), breakdown=breakdown, tier=tier_for(total))

    def assess(self, venue: Venue) -> VenueAssessment:
        if self.enable_caching and venue.id in self._cache:
            validation, quality = self._cache[venue.id]
        else:
            validation, quality = self.validate(venue), self.score(venue)
            if self.enable_caching:
                self._cache[venue.id] = (validation, quality)

        venue.confidence_score = quality.score
        venue.quality_signals.passes_name_validation = validation.valid
        return VenueAssessment(venue=venue, validation=validation, quality=quality)

    # ----- batches -----

    def process_batch(self, venues: Iterable[Venue]) -> BatchResult:
        result = BatchResult()
        for venue in venues:
            try:
                assessment = self.assess(venue)
            except Exception as e:
                logger.warning(f"Quality assessment failed for {getattr(venue, 'name', '?')}: {e}")
                try:
                    venue.confidence_score = 0.0
                except AttributeError:
                    pass
                assessment = VenueAssessment(
                    venue=venue,
                    validation=ValidationResult(valid=False, errors=[f"Processing error: {e}"]),
                    quality=QualityScore(score=0.0, tier="low"),
                )

            result.processed.append(assessment)
            if not assessment.validation.valid:
                result.invalid.append(venue)
                continue

            result.valid.append(venue)
            {"high": result.high_quality, "medium": result.medium_quality}.get(
                assessment.quality.tier, result.low_quality
            ).append(venue)

        total = len(result.processed)
        scores = [a.quality.score for a in result.processed]
        result.stats = {
            "total": total,
            "valid_count": len(result.valid),
            "invalid_count": len(result.invalid),
            "high_quality_count": len(result.high_quality),
            "medium_quality_count": len(result.medium_quality),
            "low_quality_count": len(result.low_quality),
            "average_score": round(sum(scores) / total, 2) if total else 0.0,
            "validation_rate": round(len(result.valid) / total * 100, 2) if total else 0.0,
        }
        logger.info(
            f"Quality batch: {total} venues, {len(result.valid)} valid, "
            f"{len(result.high_quality)} high / {len(result.medium_quality)} medium"
        )
        return result

    def filter_by_quality(self, venues: Iterable[Venue], threshold: float = tiers.medium) -> list[Venue]:
        batch = self.process_batch(venues)
        return [v for v in batch.valid if v.confidence_score >= threshold]

    def get_quality_stats(self, venues: Iterable[Venue]) -> dict:
        """Tier counts and a 10-point score histogram."""
        venues = list(venues)
        distribution = {f"{lo}-{lo + 9}": 0 for lo in range(0, 90, 10)}
        distribution["90-100"] = 0
        counts = Counter()
        for v in venues:
            score = min(max(v.confidence_score, 0.0), 100.0)
            bucket = min(int(score // 10) * 10, 90)
            distribution["90-100" if bucket == 90 else f"{bucket}-{bucket + 9}"] += 1
            counts[tier_for(score)] += 1

        total = len(venues)
        return {
            "total": total,
            "high_quality": counts["high"],
            "medium_quality": counts["medium"],
            "low_quality": counts["low"],
            "average_score": round(sum(v.confidence_score for v in venues) / total, 2) if total else 0.0,
            "distribution": distribution,
        }


# ---------- Pipeline quality checkers ----------
# Read-only, advisory checks over a recommendation or venue list.


def _venue_of(item: Any) -> Venue:
    return getattr(item, "venue", item)


def duplicate_check(items: list) -> QualityCheckResult:
    names = Counter((_venue_of(i).name or "").strip().lower() for i in items)
    duplicates = sorted(n for n, c in names.items() if c > 1)
    return QualityCheckResult(
        name="duplicate_check",
        passed=not duplicates,
        message="No duplicate venues" if not duplicates else f"{len(duplicates)} duplicate venue names",
        details={"duplicates": duplicates},
    )


def diversity_check(items: list, requested_categories: list[str] | None = None) -> QualityCheckResult:
    categories = sorted({str(getattr(_venue_of(i).category, "value", _venue_of(i).category)) for i in items})
    required = checks.min_categories
    if requested_categories:
        required = min(required, len(requested_categories))
    required = min(required, len(items))
    passed = len(categories) >= required
    return QualityCheckResult(
        name="diversity_check",
        passed=passed,
        message=f"{len(categories)} categories (need {required})",
        details={"categories": categories, "required": required},
    )


def quality_distribution_check(items: list) -> QualityCheckResult:
    total = len(items)
    high = sum(1 for i in items if _venue_of(i).confidence_score >= tiers.high)
    pct = high / total * 100 if total else 0.0
    return QualityCheckResult(
        name="quality_distribution_check",
        passed=pct >= checks.min_high_quality_pct,
        message=f"{pct:.0f}% high quality (need {checks.min_high_quality_pct:.0f}%)",
        details={"high_quality": high, "total": total, "high_quality_pct": round(pct, 1)},
    )


# Singleton
quality_controller = QualityController()
