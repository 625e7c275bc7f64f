"""Confidence fusion and severity determination.

Combines the votes gathered by validation into one decision:

Confidence:
- No confirmed votes: 0
- One confirmed vote: its confidence
- n > 1 confirmed votes: mean + (n - 1) * 10, capped at 95, and never
  below the strongest confirmed vote (agreement can only add)
- Always clamped to [0, 100]

Confirmation: confidence > 70 (settings.confirmation_threshold). Only
fusion sets disaster_confirmed; no individual source can.

Severity, first rule that applies:
1. low if confidence < 50
2. critical if an official alert is "extreme" or a warning, or any
   catalogued earthquake exceeds magnitude 7.0
3. high if confidence > 85
4. medium if confidence > 70
5. low

Usage:
    from eas_system.agents.sifters.validation.confidence_fusion import ConfidenceFusionEngine

    engine = ConfidenceFusionEngine()
    result = engine.fuse(result)
"""

from typing import Optional

from eas_system.config.disaster_profiles import (
    GENERIC_CONFIRMED_RECOMMENDATIONS,
    KM_PER_MAGNITUDE_UNIT,
    RECOMMENDATIONS_BY_TYPE,
    UNCONFIRMED_RECOMMENDATIONS,
    affected_radius_km,
)
from eas_system.config.settings import settings
from eas_system.data_management.schemas import (
    AffectedArea,
    GeoPoint,
    OfficialAlert,
    SeismicReading,
    Severity,
    ValidationResult,
    ValidationSource,
)
from eas_system.utils.logging import get_structured_logger

AGREEMENT_BOOST = 10.0
BOOST_CAP = 95.0
CRITICAL_MAGNITUDE = 7.0
MIN_SEVERE_CONFIDENCE = 50.0
HIGH_CONFIDENCE = 85.0


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class ConfidenceFusionEngine:
    """Votes -> confidence, confirmation, severity, recommendations, area."""

    def __init__(
        self,
        confirmation_threshold: Optional[float] = None,
        agreement_boost: float = AGREEMENT_BOOST,
        boost_cap: float = BOOST_CAP,
    ) -> None:
        """Initialize ConfidenceFusionEngine.

        Args:
            confirmation_threshold: Confidence that must be exceeded to confirm.
                                    Defaults to settings.confirmation_threshold.
            agreement_boost: Points added per additional agreeing source.
            boost_cap: Ceiling for the agreement-boosted mean.
        """
        self.confirmation_threshold = (
            settings.confirmation_threshold
            if confirmation_threshold is None
            else confirmation_threshold
        )
        self.agreement_boost = agreement_boost
        self.boost_cap = boost_cap
        self._logger = get_structured_logger("ConfidenceFusionEngine")

    def fuse_confidence(self, votes: list[ValidationSource]) -> float:
        """Overall confidence from the confirmed votes."""
        confirmed = [clamp(vote.confidence) for vote in votes if vote.confirmed]
        if not confirmed:
            return 0.0

        fused = sum(confirmed) / len(confirmed)
        if len(confirmed) > 1:
            boosted = min(fused + (len(confirmed) - 1) * self.agreement_boost, self.boost_cap)
            fused = max(boosted, max(confirmed))
        return clamp(fused)

    def is_confirmed(self, confidence: float) -> bool:
        return confidence > self.confirmation_threshold

    def determine_severity(
        self,
        confidence: float,
        official_alerts: list[OfficialAlert],
        seismic_data: list[SeismicReading],
    ) -> Severity:
        if confidence < MIN_SEVERE_CONFIDENCE:
            return Severity.LOW

        has_extreme_alert = any(
            "extreme" in alert.severity.lower() or "warning" in alert.alert_type.lower()
            for alert in official_alerts
        )
        has_major_quake = any(reading.magnitude > CRITICAL_MAGNITUDE for reading in seismic_data)
        if has_extreme_alert or has_major_quake:
            return Severity.CRITICAL

        if confidence > HIGH_CONFIDENCE:
            return Severity.HIGH
        if confidence > self.confirmation_threshold:
            return Severity.MEDIUM
        return Severity.LOW

    @staticmethod
    def recommendations(disaster_type: str, confirmed: bool) -> list[str]:
        if not confirmed:
            return list(UNCONFIRMED_RECOMMENDATIONS)
        return list(GENERIC_CONFIRMED_RECOMMENDATIONS) + list(
            RECOMMENDATIONS_BY_TYPE.get(disaster_type, [])
        )

    @staticmethod
    def affected_area(
        disaster_type: str,
        severity: Severity,
        center: Optional[GeoPoint],
        seismic_data: list[SeismicReading],
    ) -> Optional[AffectedArea]:
        """Circle sized from the per-type radius table, widened for big quakes."""
        if center is None:
            return None
        radius = affected_radius_km(disaster_type, severity.value)
        if seismic_data:
            strongest = max(reading.magnitude for reading in seismic_data)
            radius = max(radius, strongest * KM_PER_MAGNITUDE_UNIT)
        return AffectedArea(center=center, radius_km=round(radius, 1))

    def fuse(self, result: ValidationResult) -> ValidationResult:
        """Fill the derived fields of a ValidationResult in place and return it."""
        confidence = self.fuse_confidence(result.validation_sources)
        confirmed = self.is_confirmed(confidence)
        severity = self.determine_severity(confidence, result.official_alerts, result.seismic_data)

        result.confidence = round(confidence, 2)
        result.disaster_confirmed = confirmed
        result.severity = severity
        result.recommendations = self.recommendations(result.disaster_type, confirmed)
        result.affected_area = self.affected_area(
            result.disaster_type, severity, result.coordinates, result.seismic_data
        )

        self._logger.info(
            "fusion_complete",
            disaster_type=result.disaster_type,
            votes=len(result.validation_sources),
            confirmed_votes=len(result.confirmed_votes),
            confidence=result.confidence,
            disaster_confirmed=confirmed,
            severity=severity.value,
        )
        return result
