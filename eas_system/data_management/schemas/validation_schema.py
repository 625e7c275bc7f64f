"""Validation domain schemas.

Each authoritative source consulted during validation contributes
ValidationSource votes, and optionally raw readings (official alerts,
meteorological conditions, seismic records). The votes accumulate in a
ValidationResult; only the fusion engine sets its confidence, severity
and disaster_confirmed fields.

Vote confidence is clamped to [0, 100] on construction so out-of-range
source output can never push fused confidence outside that range.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from eas_system.data_management.schemas.classification_schema import Severity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp_score(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return max(0.0, min(100.0, number))


class GeoPoint(BaseModel):
    """WGS84 coordinate."""

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class AffectedArea(BaseModel):
    """Circle approximating the area an event affects."""

    center: GeoPoint
    radius_km: float = Field(..., ge=0.0)


class ValidationSource(BaseModel):
    """One source's confirmed/unconfirmed judgment (a vote)."""

    source: str = Field(..., description="Source name, e.g. 'USGS'")
    confirmed: bool = Field(
        ..., description="Source data is consistent with the claimed disaster"
    )
    confidence: float = Field(
        default=0.0, ge=0.0, le=100.0, description="Vote confidence 0-100"
    )
    data: dict[str, Any] = Field(
        default_factory=dict, description="Opaque source-specific payload"
    )
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return _clamp_score(value)


class OfficialAlert(BaseModel):
    """An alert issued by an official agency."""

    source: str
    alert_type: str = Field(..., description="Event name, e.g. 'Flood Warning'")
    severity: str = Field(default="", description="Agency severity, e.g. 'Extreme'")
    area: str = Field(default="", description="Affected area description")
    issued_at: Optional[str] = Field(default=None, description="Issue time as sent")
    message: str = Field(default="", description="Headline")


class MeteorologicalReading(BaseModel):
    """Current conditions at a point."""

    source: str
    location: GeoPoint
    temperature: float = Field(default=0.0, description="Degrees Celsius")
    humidity: float = Field(default=0.0, description="Relative humidity %")
    pressure: float = Field(default=0.0, description="hPa")
    wind_speed: float = Field(default=0.0, description="m/s")
    wind_direction: float = Field(default=0.0, description="Degrees")
    precipitation: float = Field(default=0.0, description="mm over the last hour")
    visibility: float = Field(default=10000.0, description="Metres")
    condition: str = Field(default="", description="Condition group, e.g. 'Rain'")
    description: str = Field(default="", description="Condition detail")
    timestamp: datetime = Field(default_factory=_utcnow)


class SeismicReading(BaseModel):
    """A catalogued earthquake."""

    source: str
    magnitude: float
    depth: float = Field(default=0.0, description="Depth in km")
    location: GeoPoint
    place: str = ""
    time: Optional[datetime] = None
    tsunami: bool = False


class FireDetection(BaseModel):
    """A satellite active-fire detection."""

    latitude: float
    longitude: float
    confidence: float = Field(default=0.0, description="Detection confidence 0-100")
    acquired_at: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of multi-source validation for one event."""

    disaster_type: str = Field(default="none", description="Type that was validated")
    location: Optional[str] = Field(default=None, description="Free-text location")
    coordinates: Optional[GeoPoint] = Field(
        default=None, description="Geocoded location, unset when geocoding failed"
    )
    location_resolved: bool = Field(default=False)

    validation_sources: list[ValidationSource] = Field(default_factory=list)
    official_alerts: list[OfficialAlert] = Field(default_factory=list)
    meteorological_data: list[MeteorologicalReading] = Field(default_factory=list)
    seismic_data: list[SeismicReading] = Field(default_factory=list)

    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    severity: Severity = Field(default=Severity.LOW)
    affected_area: Optional[AffectedArea] = None
    recommendations: list[str] = Field(default_factory=list)
    disaster_confirmed: bool = False
    validated_at: datetime = Field(default_factory=_utcnow)

    @property
    def confirmed_votes(self) -> list[ValidationSource]:
        return [vote for vote in self.validation_sources if vote.confirmed]

    def merge(self, findings: "SourceFindings") -> None:
        """Append one source's findings."""
        self.validation_sources.extend(findings.votes)
        self.official_alerts.extend(findings.official_alerts)
        self.meteorological_data.extend(findings.meteorological_data)
        self.seismic_data.extend(findings.seismic_data)


class SourceFindings(BaseModel):
    """Everything a single source query contributed."""

    source: str
    votes: list[ValidationSource] = Field(default_factory=list)
    official_alerts: list[OfficialAlert] = Field(default_factory=list)
    meteorological_data: list[MeteorologicalReading] = Field(default_factory=list)
    seismic_data: list[SeismicReading] = Field(default_factory=list)

    @classmethod
    def failed(cls, source: str, error: str) -> "SourceFindings":
        """A source that could not be consulted: one zero-confidence vote."""
        return cls(
            source=source,
            votes=[
                ValidationSource(
                    source=source,
                    confirmed=False,
                    confidence=0.0,
                    data={"error": error},
                )
            ],
        )
