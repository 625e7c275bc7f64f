"""Disaster event aggregate and the public alert record derived from it.

DisasterEvent is the aggregate root: it owns the originating post, the
classification, the validation result, and the single resolved
confidence/severity pair that downstream consumers read. Stage
timestamps record when each lifecycle transition happened.

Lifecycle:
    ingested -> classified -> validated -> alerted

"classified" is terminal for non-disasters and below-gate events;
"alerted" is always terminal.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from eas_system.config.disaster_profiles import active_duration
from eas_system.data_management.schemas.classification_schema import (
    ClassificationResult,
    DisasterType,
    Severity,
)
from eas_system.data_management.schemas.post_schema import RawPost
from eas_system.data_management.schemas.validation_schema import (
    AffectedArea,
    GeoPoint,
    OfficialAlert,
    ValidationResult,
)


class EventState(str, Enum):
    INGESTED = "ingested"
    CLASSIFIED = "classified"
    VALIDATED = "validated"
    ALERTED = "alerted"


ALLOWED_TRANSITIONS: dict[EventState, frozenset[EventState]] = {
    EventState.INGESTED: frozenset({EventState.CLASSIFIED}),
    EventState.CLASSIFIED: frozenset({EventState.VALIDATED}),
    EventState.VALIDATED: frozenset({EventState.ALERTED}),
    EventState.ALERTED: frozenset(),
}


class DisasterEvent(BaseModel):
    """One post's journey through the pipeline."""

    event_id: str = Field(..., description="Event identifier, derived from the post id")
    post: RawPost = Field(..., description="Originating post")
    classification: Optional[ClassificationResult] = Field(
        default=None, description="Attached once by the classifier, never replaced"
    )
    validation: Optional[ValidationResult] = Field(
        default=None, description="Set when validation completes"
    )
    state: EventState = Field(default=EventState.INGESTED)
    coordinates: Optional[GeoPoint] = Field(
        default=None, description="Unset when geocoding failed or never ran"
    )
    confidence: float = Field(
        default=0.0, ge=0.0, le=100.0, description="Resolved overall confidence"
    )
    severity: Severity = Field(default=Severity.LOW, description="Resolved severity")

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    classified_at: Optional[datetime] = None
    validated_at: Optional[datetime] = None
    alerted_at: Optional[datetime] = None
    alert_id: Optional[str] = None

    @property
    def disaster_type(self) -> DisasterType:
        if self.classification is None:
            return DisasterType.NONE
        return self.classification.disaster_type

    @property
    def is_confirmed(self) -> bool:
        return self.validation is not None and self.validation.disaster_confirmed

    def can_transition(self, target: EventState) -> bool:
        return target in ALLOWED_TRANSITIONS[self.state]


class AlertPriority(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"
    IMMEDIATE = "immediate"


_PRIORITY_BY_SEVERITY = {
    Severity.CRITICAL: AlertPriority.IMMEDIATE,
    Severity.HIGH: AlertPriority.HIGH,
}


class Alert(BaseModel):
    """Public alert created for a confirmed event."""

    alert_id: str
    event_id: str
    disaster_type: DisasterType
    severity: Severity
    confidence: float = Field(..., ge=0.0, le=100.0)
    location: Optional[str] = None
    affected_area: Optional[AffectedArea] = None
    official_alerts: list[OfficialAlert] = Field(default_factory=list)
    validation_sources: list[str] = Field(
        default_factory=list, description="Names of sources that confirmed"
    )
    recommendations: list[str] = Field(default_factory=list)
    priority: AlertPriority = AlertPriority.MEDIUM
    status: str = "active"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "alert_id": "alert_t3_abc123_1792332300000",
                    "event_id": "t3_abc123",
                    "disaster_type": "earthquake",
                    "severity": "critical",
                    "confidence": 90.0,
                    "location": "San Francisco",
                    "validation_sources": ["USGS"],
                    "priority": "immediate",
                    "status": "active",
                }
            ]
        }
    }

    @classmethod
    def from_event(cls, event: DisasterEvent, now: Optional[datetime] = None) -> "Alert":
        """Build the alert record for a validated, confirmed event."""
        now = now or datetime.now(timezone.utc)
        validation = event.validation or ValidationResult()
        location = validation.location
        if location is None and event.classification is not None:
            location = event.classification.location
        return cls(
            alert_id=f"alert_{event.event_id}_{int(now.timestamp() * 1000)}",
            event_id=event.event_id,
            disaster_type=event.disaster_type,
            severity=event.severity,
            confidence=validation.confidence,
            location=location,
            affected_area=validation.affected_area,
            official_alerts=list(validation.official_alerts),
            validation_sources=[vote.source for vote in validation.confirmed_votes],
            recommendations=list(validation.recommendations),
            priority=_PRIORITY_BY_SEVERITY.get(event.severity, AlertPriority.MEDIUM),
            created_at=now,
        )

    def is_active(self, now: Optional[datetime] = None, duration: Optional[timedelta] = None) -> bool:
        """Whether the alert is still within its disaster type's active window."""
        now = now or datetime.now(timezone.utc)
        window = duration or active_duration(self.disaster_type.value)
        return self.status == "active" and now - self.created_at <= window
