"""Schema package for posts, classifications, validation results and events.

All models are pydantic v2. Posts, keyword signals and classification
results are frozen once created; validation results accumulate votes and
are finalized by the fusion engine; DisasterEvent is the mutable
aggregate root owned by the lifecycle coordinator.

Primary exports:
- RawPost / KeywordSignal: ingestion input and pre-filter output
- ClassificationResult: classifier output
- ValidationSource / ValidationResult: votes and their fused outcome
- DisasterEvent / Alert: aggregate root and public alert record

Usage:
    from eas_system.data_management.schemas import RawPost, DisasterEvent
    post = RawPost(post_id="t3_abc", title="Flooding in Houston")
    event = DisasterEvent(event_id=post.post_id, post=post)
"""

# Post schemas
from eas_system.data_management.schemas.post_schema import (
    KeywordSignal,
    RawPost,
)

# Classification schemas
from eas_system.data_management.schemas.classification_schema import (
    ClassificationResult,
    DisasterType,
    Severity,
    Timeframe,
    Urgency,
    clamp_confidence,
)

# Validation schemas
from eas_system.data_management.schemas.validation_schema import (
    AffectedArea,
    FireDetection,
    GeoPoint,
    MeteorologicalReading,
    OfficialAlert,
    SeismicReading,
    SourceFindings,
    ValidationResult,
    ValidationSource,
)

# Event schemas
from eas_system.data_management.schemas.event_schema import (
    ALLOWED_TRANSITIONS,
    Alert,
    AlertPriority,
    DisasterEvent,
    EventState,
)

__all__ = [
    # Post
    "RawPost",
    "KeywordSignal",
    # Classification
    "ClassificationResult",
    "DisasterType",
    "Severity",
    "Urgency",
    "Timeframe",
    "clamp_confidence",
    # Validation
    "GeoPoint",
    "AffectedArea",
    "ValidationSource",
    "OfficialAlert",
    "MeteorologicalReading",
    "SeismicReading",
    "FireDetection",
    "SourceFindings",
    "ValidationResult",
    # Event
    "EventState",
    "ALLOWED_TRANSITIONS",
    "DisasterEvent",
    "Alert",
    "AlertPriority",
]
