from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from venuescout.models.venue import VenueCategory
from venuescout.services.config import PREFERENCE_CATEGORY_KEYWORDS


class RecommendationRequest(BaseModel):
    destination: str
    categories: list[str] = Field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None
    budget: float | None = None
    preferences: list[str] = Field(default_factory=list)
    travelers: int = 1

    @field_validator("destination")
    @classmethod
    def _destination_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("destination must not be blank")
        return v

    @field_validator("categories", "preferences")
    @classmethod
    def _normalize_terms(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for term in v:
            term = term.strip().lower()
            if term and term not in seen:
                seen.append(term)
        return seen

    @model_validator(mode="after")
    def _dates_ordered(self) -> "RecommendationRequest":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def trip_duration_days(self) -> int:
        if self.start_date and self.end_date:
            return max((self.end_date - self.start_date).days, 1)
        return 2

    def cache_key(self) -> str:
        cats = "_".join(sorted(self.categories))
        prefs = "_".join(sorted(self.preferences))
        key = f"recs:{self.destination}:{cats}:{prefs}:{self.start_date}:{self.end_date}"
        return key.lower().replace(" ", "_")


class RecommendationMetricsResponse(BaseModel):
    overall: dict
    stages: dict
    engine: dict = Field(default_factory=dict)


# ---------- Category resolution ----------


def map_preference_to_category(preference: str) -> VenueCategory | None:
    pref = (preference or "").strip().lower()
    direct = VenueCategory.parse(pref)
    if direct:
        return direct
    for category, keywords in PREFERENCE_CATEGORY_KEYWORDS.items():
        if any(k in pref for k in keywords):
            return VenueCategory(category)
    return None


def extract_categories(request: RecommendationRequest) -> list[str]:
    """Requested categories plus any implied by free-form preferences."""
    found: list[str] = []
    for term in list(request.categories) + list(request.preferences):
        category = map_preference_to_category(term)
        if category and category.value not in found:
            found.append(category.value)
    return found
