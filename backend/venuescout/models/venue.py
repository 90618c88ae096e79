"""Venue domain model — the single normalized shape every source converts into."""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class VenueCategory(str, Enum):
    DINING = "dining"
    CULTURE = "culture"
    NATURE = "nature"
    SHOPPING = "shopping"
    NIGHTLIFE = "nightlife"
    ACCOMMODATION = "accommodation"
    TRANSPORTATION = "transportation"
    WELLNESS = "wellness"
    ATTRACTION = "attraction"

    @classmethod
    def parse(cls, value: Any) -> "VenueCategory | None":
        """Return the category for an enum or its string value, else None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class DataSource(str, Enum):
    REDDIT = "reddit"
    GOOGLE_PLACES = "google_places"
    CURATED = "curated"
    FALLBACK = "fallback"
    AI_ENHANCED = "ai_enhanced"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Coordinates:
    lat: float
    lng: float

    def is_valid(self) -> bool:
        try:
            lat, lng = float(self.lat), float(self.lng)
        except (TypeError, ValueError):
            return False
        if math.isnan(lat) or math.isnan(lng):
            return False
        return -90 <= lat <= 90 and -180 <= lng <= 180

    def distance_km(self, other: "Coordinates") -> float:
        """Haversine distance in kilometres."""
        r = 6371.0
        d_lat = math.radians(other.lat - self.lat)
        d_lng = math.radians(other.lng - self.lng)
        a = (
            math.sin(d_lat / 2) ** 2
            + math.cos(math.radians(self.lat)) * math.cos(math.radians(other.lat)) * math.sin(d_lng / 2) ** 2
        )
        return r * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass
class PriceRange:
    min: float = 0
    max: float = 0
    currency: str = "USD"
    level: int = 1  # 1-4 ($ to $$$$)
    description: str = ""

    def display(self) -> str:
        if self.min and self.max:
            return f"{self.currency} {self.min:g}-{self.max:g}"
        return self.description or "$" * self.level

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "currency": self.currency,
            "level": self.level,
            "display": self.display(),
        }


@dataclass
class SourceRecord:
    source_type: DataSource
    raw_data: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        return {
            "source_type": self.source_type.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class CustomSignal:
    value: float
    weight: float = 1.0
    timestamp: datetime = field(default_factory=_utcnow)


# (attribute, weight, normaliser); weights sum to 1.0
BASE_SIGNAL_WEIGHTS: tuple[tuple[str, float, float], ...] = (
    ("mention_frequency", 0.15, 10.0),
    ("sentiment_score", 0.10, 1.0),
    ("has_real_location", 0.20, 1.0),
    ("has_valid_business_info", 0.15, 1.0),
    ("passes_name_validation", 0.15, 1.0),
    ("cross_source_verified", 0.10, 1.0),
    ("has_user_ratings", 0.10, 1.0),
    ("has_recent_activity", 0.05, 1.0),
)


@dataclass
class QualitySignals:
    mention_frequency: int = 0
    sentiment_score: float = 0.0  # -1..1
    has_real_location: bool = False
    has_valid_business_info: bool = False
    passes_name_validation: bool = False
    cross_source_verified: bool = False
    has_user_ratings: bool = False
    has_recent_activity: bool = False
    signals: dict[str, CustomSignal] = field(default_factory=dict)

    def add_signal(self, name: str, value: float, weight: float = 1.0) -> None:
        self.signals[name] = CustomSignal(value=value, weight=weight)

    def get_signal(self, name: str) -> CustomSignal | None:
        return self.signals.get(name)

    def calculate_overall_score(self) -> float:
        """Weighted composite of base and custom signals, clamped to 0-100."""
        total = 0.0
        for attr, weight, max_value in BASE_SIGNAL_WEIGHTS:
            value = float(getattr(self, attr) or 0)
            normalized = min(value / max_value, 1.0)
            total += normalized * weight * 100

        for signal in self.signals.values():
            try:
                total += float(signal.value) * float(signal.weight)
            except (TypeError, ValueError):
                continue

        if math.isnan(total):
            return 0.0
        return min(max(total, 0.0), 100.0)

    def to_dict(self) -> dict:
        return {
            "mention_frequency": self.mention_frequency,
            "sentiment_score": round(self.sentiment_score, 3),
            "has_real_location": self.has_real_location,
            "has_valid_business_info": self.has_valid_business_info,
            "passes_name_validation": self.passes_name_validation,
            "cross_source_verified": self.cross_source_verified,
            "has_user_ratings": self.has_user_ratings,
            "has_recent_activity": self.has_recent_activity,
            "custom": {k: {"value": s.value, "weight": s.weight} for k, s in self.signals.items()},
        }


def _generate_id() -> str:
    return f"venue_{uuid.uuid4().hex[:16]}"


@dataclass
class Venue:
    name: str
    category: VenueCategory = VenueCategory.ATTRACTION
    id: str = field(default_factory=_generate_id)
    confidence_score: float = 0.0
    sources: list[SourceRecord] = field(default_factory=list)
    location: Coordinates | None = None
    price_range: PriceRange | None = None
    description: str = ""
    short_description: str = ""
    quality_signals: QualitySignals = field(default_factory=QualitySignals)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def update_confidence_score(self) -> float:
        self.confidence_score = self.quality_signals.calculate_overall_score()
        self.updated_at = _utcnow()
        return self.confidence_score

    def add_source(self, source_type: DataSource, data: dict | None = None) -> None:
        """Attach source data. Re-adding a source type replaces it in place."""
        record = SourceRecord(source_type=source_type, raw_data=dict(data or {}))
        for idx, existing in enumerate(self.sources):
            if existing.source_type == source_type:
                self.sources[idx] = record
                break
        else:
            self.sources.append(record)
        self.updated_at = _utcnow()

    def has_source(self, source_type: DataSource) -> bool:
        return any(s.source_type == source_type for s in self.sources)

    def get_source_data(self, source_type: DataSource) -> dict | None:
        for s in self.sources:
            if s.source_type == source_type:
                return s.raw_data
        return None

    @property
    def primary_source(self) -> DataSource | None:
        return self.sources[0].source_type if self.sources else None

    def is_high_quality(self) -> bool:
        return self.confidence_score >= 70

    def is_medium_quality(self) -> bool:
        return 40 <= self.confidence_score < 70

    def is_low_quality(self) -> bool:
        return self.confidence_score < 40

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value if isinstance(self.category, VenueCategory) else self.category,
            "confidence_score": round(self.confidence_score, 1),
            "sources": [s.to_dict() for s in self.sources],
            "location": self.location.to_dict() if self.location else None,
            "price_range": self.price_range.to_dict() if self.price_range else None,
            "description": self.description,
            "short_description": self.short_description,
            "quality_signals": self.quality_signals.to_dict(),
            "metadata": {k: v for k, v in self.metadata.items() if _is_json_scalar(v)},
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def _is_json_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool, list, dict))
