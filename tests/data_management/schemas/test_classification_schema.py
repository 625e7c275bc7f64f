"""Tests for classification and validation schemas.

Tests cover:
- Lenient DisasterType parsing of model output
- Confidence clamping on classification results and votes
- Frozen classification results
- ValidationResult merging and failed-source findings
"""

import pytest
from pydantic import ValidationError

from eas_system.data_management.schemas import (
    ClassificationResult,
    DisasterType,
    GeoPoint,
    SeismicReading,
    SourceFindings,
    ValidationResult,
    ValidationSource,
    clamp_confidence,
)


# ============================================================================
# Classification
# ============================================================================


class TestDisasterTypeParse:
    """Model output -> DisasterType."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("earthquake", DisasterType.EARTHQUAKE),
            (" Flood ", DisasterType.FLOOD),
            ("STORM", DisasterType.STORM),
            (DisasterType.TORNADO, DisasterType.TORNADO),
            (None, DisasterType.NONE),
            ("", DisasterType.NONE),
            ("null", DisasterType.NONE),
            ("meteor strike", DisasterType.OTHER),
        ],
    )
    def test_parse(self, value, expected: DisasterType) -> None:
        assert DisasterType.parse(value) == expected


class TestClampConfidence:
    @pytest.mark.parametrize(
        "value,expected",
        [(92, 92), (92.6, 93), ("88", 88), (-5, 0), (250, 100), ("high", 0), (None, 0), (float("nan"), 0)],
    )
    def test_clamp(self, value, expected: int) -> None:
        assert clamp_confidence(value) == expected


class TestClassificationResult:
    """Frozen classifier output."""

    def test_defaults(self) -> None:
        result = ClassificationResult()
        assert result.is_disaster is False
        assert result.disaster_type == DisasterType.NONE
        assert result.confidence == 0
        assert result.classified_at.tzinfo is not None

    def test_confidence_clamped_on_construction(self) -> None:
        assert ClassificationResult(confidence=140).confidence == 100

    def test_frozen(self) -> None:
        result = ClassificationResult(confidence=80)
        with pytest.raises(ValidationError):
            result.confidence = 10


# ============================================================================
# Validation
# ============================================================================


class TestValidationSource:
    """Votes are clamped so fusion never sees out-of-range input."""

    @pytest.mark.parametrize("raw,expected", [(150, 100.0), (-3, 0.0), ("n/a", 0.0), (64.5, 64.5)])
    def test_confidence_clamped(self, raw, expected: float) -> None:
        vote = ValidationSource(source="test", confirmed=True, confidence=raw)
        assert vote.confidence == expected


class TestGeoPoint:
    def test_rejects_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            GeoPoint(lat=91.0, lng=0.0)
        with pytest.raises(ValidationError):
            GeoPoint(lat=0.0, lng=-181.0)


class TestValidationResult:
    """Accumulating findings."""

    def test_merge_appends_everything(self) -> None:
        point = GeoPoint(lat=37.77, lng=-122.42)
        result = ValidationResult(disaster_type="earthquake")
        findings = SourceFindings(
            source="USGS",
            votes=[ValidationSource(source="USGS", confirmed=True, confidence=90)],
            seismic_data=[SeismicReading(source="USGS", magnitude=6.1, location=point)],
        )

        result.merge(findings)
        result.merge(SourceFindings.failed("EMSC", "timed out"))

        assert [v.source for v in result.validation_sources] == ["USGS", "EMSC"]
        assert [v.source for v in result.confirmed_votes] == ["USGS"]
        assert len(result.seismic_data) == 1

    def test_failed_findings(self) -> None:
        findings = SourceFindings.failed("NOAA/NWS", "HTTPStatusError: 404")
        (vote,) = findings.votes

        assert vote.source == "NOAA/NWS"
        assert vote.confirmed is False
        assert vote.confidence == 0.0
        assert vote.data == {"error": "HTTPStatusError: 404"}
