"""Classification schema produced by the disaster classifier.

A ClassificationResult is created once per post and attached to the
event record. It is frozen: re-classification would create a new
result, never modify an existing one.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class DisasterType(str, Enum):
    """Disaster taxonomy.

    STORM is the target of the weather-category keyword fallback and is
    validated with the same sources as tornadoes. NONE marks posts that
    are not disasters at all; OTHER marks disasters outside the taxonomy.
    """

    EARTHQUAKE = "earthquake"
    TSUNAMI = "tsunami"
    FLOOD = "flood"
    HURRICANE = "hurricane"
    TORNADO = "tornado"
    WILDFIRE = "wildfire"
    VOLCANO = "volcano"
    LANDSLIDE = "landslide"
    BLIZZARD = "blizzard"
    DROUGHT = "drought"
    STORM = "storm"
    OTHER = "other"
    NONE = "none"

    @classmethod
    def parse(cls, value: Any) -> "DisasterType":
        """Lenient conversion for model output: unknown strings become OTHER."""
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ("", "null", "none"):
            return cls.NONE
        try:
            return cls(text)
        except ValueError:
            return cls.OTHER


class Severity(str, Enum):
    """Severity ladder shared by classification, validation and alerts."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    IMMEDIATE = "immediate"


class Timeframe(str, Enum):
    HISTORICAL = "historical"
    CURRENT = "current"
    IMMINENT = "imminent"


def clamp_confidence(value: Any) -> int:
    """Coerce a loosely-typed confidence into an int in [0, 100]."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN
        return 0
    return int(round(max(0.0, min(100.0, number))))


class ClassificationResult(BaseModel):
    """Structured disaster classification for one post."""

    is_disaster: bool = Field(default=False, description="Post reports a real disaster")
    disaster_type: DisasterType = Field(
        default=DisasterType.NONE, description="Classified disaster type"
    )
    severity: Severity = Field(default=Severity.LOW, description="Assessed severity")
    confidence: int = Field(
        default=0, ge=0, le=100, description="Classifier confidence 0-100"
    )
    location: Optional[str] = Field(default=None, description="Free-text location")
    urgency: Urgency = Field(default=Urgency.LOW, description="Response urgency")
    affected_population: Optional[int] = Field(
        default=None, description="Estimated number of people affected"
    )
    timeframe: Timeframe = Field(
        default=Timeframe.CURRENT, description="Whether the event is past, ongoing or imminent"
    )
    summary: str = Field(default="", description="Short analysis summary")
    key_indicators: list[str] = Field(
        default_factory=list, description="Phrases that indicate a disaster"
    )
    recommendations: list[str] = Field(
        default_factory=list, description="Recommended actions"
    )
    used_fallback: bool = Field(
        default=False,
        description="True when produced by the keyword fallback instead of the model",
    )
    classified_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When classification completed",
    )

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> int:
        return clamp_confidence(value)

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "is_disaster": True,
                    "disaster_type": "earthquake",
                    "severity": "high",
                    "confidence": 88,
                    "location": "San Francisco",
                    "urgency": "immediate",
                    "timeframe": "current",
                    "summary": "Strong earthquake felt across the Bay Area.",
                    "key_indicators": ["earthquake", "magnitude", "evacuated"],
                    "recommendations": ["Prepare for aftershocks"],
                }
            ]
        },
    }
