"""Recommendation wrapper returned to callers."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from venuescout.models.venue import Venue


@dataclass
class Recommendation:
    venue: Venue
    score: float = 0.0
    reasons: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    time_slots: list[str] = field(default_factory=list)  # empty = any slot
    estimated_duration: str | None = None
    best_time_to_visit: str | None = None
    alternatives: list[Venue] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_venue(
        cls,
        venue: Venue,
        score: float | None = None,
        reasons: list[str] | None = None,
        tags: list[str] | None = None,
    ) -> "Recommendation":
        rec = cls(venue=venue, score=venue.confidence_score if score is None else score)
        for reason in reasons or []:
            rec.add_reason(reason)
        for tag in tags or []:
            rec.add_tag(tag)
        return rec

    def add_reason(self, reason: str) -> "Recommendation":
        self.reasons.append(reason)
        return self

    def add_tag(self, tag: str) -> "Recommendation":
        if tag not in self.tags:
            self.tags.append(tag)
        return self

    def add_time_slot(self, slot: str) -> "Recommendation":
        if slot not in self.time_slots:
            self.time_slots.append(slot)
        return self

    def is_valid_for_time_slot(self, slot: str) -> bool:
        return not self.time_slots or slot in self.time_slots

    def to_dict(self) -> dict:
        return {
            "venue": self.venue.to_dict(),
            "score": round(self.score, 1),
            "reasons": list(self.reasons),
            "tags": list(self.tags),
            "time_slots": list(self.time_slots),
            "estimated_duration": self.estimated_duration,
            "best_time_to_visit": self.best_time_to_visit,
            "alternatives": [alt.to_dict() for alt in self.alternatives],
        }
