"""Tests for venue validation, scoring and batch tiering."""

from venuescout.models.venue import Coordinates, DataSource, QualitySignals, Venue, VenueCategory
from venuescout.services.quality_controller import (
    QualityController,
    diversity_check,
    duplicate_check,
    quality_distribution_check,
    tier_for,
)

from conftest import make_venue


def _strong_venue(name: str, category: VenueCategory = VenueCategory.DINING) -> Venue:
    venue = make_venue(name, category=category, source=DataSource.GOOGLE_PLACES, location=(48.85, 2.35))
    qs = venue.quality_signals
    qs.mention_frequency = 5
    qs.sentiment_score = 0.8
    qs.has_valid_business_info = True
    qs.cross_source_verified = True
    return venue


class TestSignals:
    def test_zero_signal_venue_is_low_quality(self):
        venue = Venue(name="Quiet Corner Cafe")
        venue.update_confidence_score()

        assert venue.confidence_score == 0.0
        assert venue.is_low_quality()
        assert not venue.is_medium_quality()

    def test_negative_custom_signal_clamps_to_zero(self):
        signals = QualitySignals()
        signals.add_signal("spam_report", -500.0)
        assert signals.calculate_overall_score() == 0.0

    def test_large_custom_signal_clamps_to_hundred(self):
        signals = QualitySignals(
            mention_frequency=50,
            sentiment_score=1.0,
            has_real_location=True,
            has_valid_business_info=True,
            passes_name_validation=True,
            cross_source_verified=True,
            has_user_ratings=True,
            has_recent_activity=True,
        )
        signals.add_signal("editor_pick", 80.0, weight=2.0)
        assert signals.calculate_overall_score() == 100.0

    def test_tier_boundaries(self):
        assert tier_for(70) == "high"
        assert tier_for(69.9) == "medium"
        assert tier_for(40) == "medium"
        assert tier_for(39.9) == "low"


class TestValidate:
    def test_sentence_fragment_name_is_invalid(self):
        venue = make_venue("It was great")
        result = QualityController().validate(venue)

        assert not result.valid
        assert result.details["name"] is False

    def test_business_pattern_is_advisory_by_default(self):
        venue = make_venue("Xyzzy")
        result = QualityController().validate(venue)

        assert result.valid
        assert result.details["business_pattern"] is False
        assert any("business pattern" in w for w in result.warnings)

    def test_business_pattern_is_enforced_in_strict_mode(self):
        result = QualityController(strict_mode=True).validate(make_venue("Xyzzy"))
        assert not result.valid

    def test_invalid_coordinates_fail(self):
        venue = make_venue("Harbour Grill")
        venue.location = Coordinates(lat=123.0, lng=2.0)
        assert not QualityController().validate(venue).valid

    def test_venue_without_sources_fails(self):
        assert not QualityController().validate(Venue(name="Harbour Grill")).valid

    def test_raising_validator_becomes_warning(self):
        def broken(venue):
            raise RuntimeError("boom")

        controller = QualityController().add_validator("broken", broken)
        result = controller.validate(make_venue("Harbour Grill"))

        assert result.valid
        assert any("broken" in w for w in result.warnings)


class TestScore:
    def test_raising_scorer_contributes_zero(self):
        def broken(venue):
            raise ValueError("bad")

        controller = QualityController().add_scorer("broken", broken)
        score = controller.score(_strong_venue("Harbour Grill"))

        assert score.breakdown["broken"] == 0.0
        assert 0.0 <= score.score <= 100.0

    def test_score_is_clamped(self):
        controller = QualityController().add_scorer("huge", lambda v: 1000).add_scorer("neg", lambda v: 0)
        assert controller.score(_strong_venue("Harbour Grill")).score == 100.0

        controller = QualityController()
        controller.add_scorer("penalty", lambda v: -1000)
        assert controller.score(_strong_venue("Harbour Grill")).score == 0.0

    def test_assess_writes_confidence(self):
        venue = _strong_venue("Harbour Grill")
        assessment = QualityController().assess(venue)

        assert venue.confidence_score == assessment.quality.score
        assert assessment.quality.tier == "high"
        assert venue.quality_signals.passes_name_validation

    def test_assess_marks_name_validation_from_overall_result(self):
        venue = _strong_venue("Harbour Grill")
        venue.sources.clear()

        assessment = QualityController().assess(venue)

        assert assessment.validation.details["name"]
        assert not assessment.validation.valid
        assert not venue.quality_signals.passes_name_validation


class TestBatch:
    def test_empty_batch(self):
        batch = QualityController().process_batch([])

        assert batch.processed == []
        assert batch.stats["total"] == 0
        assert batch.stats["average_score"] == 0.0
        assert batch.stats["validation_rate"] == 0.0

    def test_batch_tiers_only_valid_venues(self):
        strong = _strong_venue("Harbour Grill")
        weak = make_venue("Quiet Corner Cafe")
        invalid = make_venue("It was great")

        batch = QualityController().process_batch([strong, weak, invalid])

        assert batch.high_quality == [strong]
        assert batch.low_quality == [weak]
        assert batch.invalid == [invalid]
        assert batch.stats["valid_count"] == 2

    def test_filter_by_quality(self):
        strong = _strong_venue("Harbour Grill")
        weak = make_venue("Quiet Corner Cafe")
        assert QualityController().filter_by_quality([strong, weak]) == [strong]

    def test_quality_stats_histogram(self):
        venues = [make_venue("Alpha Bar", confidence=95), make_venue("Beta Bar", confidence=45)]
        stats = QualityController().get_quality_stats(venues)

        assert stats["distribution"]["90-100"] == 1
        assert stats["distribution"]["40-49"] == 1
        assert stats["high_quality"] == 1
        assert stats["medium_quality"] == 1


class TestCheckers:
    def test_duplicate_check(self):
        venues = [make_venue("Harbour Grill"), make_venue("harbour grill")]
        result = duplicate_check(venues)
        assert not result.passed
        assert result.details["duplicates"] == ["harbour grill"]

    def test_diversity_check_requires_three_categories(self):
        venues = [
            make_venue("Harbour Grill", VenueCategory.DINING),
            make_venue("Old Museum", VenueCategory.CULTURE),
            make_venue("City Park", VenueCategory.NATURE),
        ]
        assert diversity_check(venues).passed
        assert not diversity_check(venues[:1] * 4).passed

    def test_quality_distribution_check(self):
        venues = [make_venue("Alpha Bar", confidence=90), make_venue("Beta Bar", confidence=10)]
        assert quality_distribution_check(venues).passed
        assert not quality_distribution_check([venues[1]]).passed
