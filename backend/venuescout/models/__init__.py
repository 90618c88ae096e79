from venuescout.models.venue import (
    Coordinates,
    CustomSignal,
    DataSource,
    PriceRange,
    QualitySignals,
    SourceRecord,
    Venue,
    VenueCategory,
)
from venuescout.models.processing import ProcessingResult, ProcessingStatus
from venuescout.models.recommendation import Recommendation

__all__ = [
    "Coordinates",
    "CustomSignal",
    "DataSource",
    "PriceRange",
    "ProcessingResult",
    "ProcessingStatus",
    "QualitySignals",
    "Recommendation",
    "SourceRecord",
    "Venue",
    "VenueCategory",
]
