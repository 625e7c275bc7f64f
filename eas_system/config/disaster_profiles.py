"""Per-disaster-type constants shared by validation, fusion and sizing.

Everything that varies by disaster type lives here as a lookup table:
official alert names that corroborate a type, affected-area radii,
active durations and recommended actions. Validation strategies, the
fusion engine and any downstream map sizing read the same tables.
"""

from datetime import timedelta
from typing import Dict, FrozenSet, List

# NWS event names that corroborate a claimed disaster type.
# A returned alert matches when its event string contains one of these.
ALERT_NAMES_BY_TYPE: Dict[str, FrozenSet[str]] = {
    "tornado": frozenset(
        {"Tornado Warning", "Tornado Watch", "Severe Thunderstorm Warning"}
    ),
    "hurricane": frozenset(
        {"Hurricane Warning", "Hurricane Watch", "Tropical Storm Warning"}
    ),
    "flood": frozenset({"Flood Warning", "Flash Flood Warning", "Flood Watch"}),
    "storm": frozenset({"Severe Thunderstorm Warning", "Winter Storm Warning"}),
    "blizzard": frozenset(
        {"Blizzard Warning", "Winter Storm Warning", "Ice Storm Warning"}
    ),
}

# Base affected radius in km before the severity multiplier
AFFECTED_RADIUS_KM: Dict[str, float] = {
    "earthquake": 50,
    "tsunami": 100,
    "hurricane": 200,
    "tornado": 25,
    "flood": 75,
    "wildfire": 60,
    "volcano": 150,
    "landslide": 30,
    "blizzard": 100,
}
DEFAULT_AFFECTED_RADIUS_KM = 40.0

SEVERITY_RADIUS_MULTIPLIERS: Dict[str, float] = {
    "low": 0.5,
    "medium": 1.0,
    "high": 1.5,
    "critical": 2.0,
}

# Seismic events cover at least this many km per magnitude unit
KM_PER_MAGNITUDE_UNIT = 20.0

# How long an event of each type stays relevant for display and routing
ACTIVE_DURATION: Dict[str, timedelta] = {
    "earthquake": timedelta(hours=24),
    "tsunami": timedelta(hours=12),
    "hurricane": timedelta(days=7),
    "tornado": timedelta(hours=6),
    "flood": timedelta(days=3),
    "wildfire": timedelta(days=14),
    "volcano": timedelta(days=30),
}
DEFAULT_ACTIVE_DURATION = timedelta(hours=24)

GENERIC_CONFIRMED_RECOMMENDATIONS: List[str] = [
    "Monitor official emergency channels",
    "Follow local evacuation orders if issued",
]

UNCONFIRMED_RECOMMENDATIONS: List[str] = [
    "Continue monitoring for updates",
    "Verify information through official sources",
]

LOCATION_NOT_FOUND_RECOMMENDATION = "Unable to validate - location not found"

RECOMMENDATIONS_BY_TYPE: Dict[str, List[str]] = {
    "earthquake": ["Prepare for aftershocks", "Check for structural damage"],
    "hurricane": ["Secure outdoor items", "Stock emergency supplies"],
    "tornado": ["Seek immediate shelter", "Avoid windows and upper floors"],
    "flood": ["Move to higher ground", "Avoid driving through flooded roads"],
    "storm": ["Stay indoors away from windows", "Prepare for power outages"],
    "wildfire": ["Prepare to evacuate on short notice", "Limit exposure to smoke"],
    "blizzard": ["Avoid unnecessary travel", "Keep emergency heat sources ready"],
}

# Classifier fallback recommendations when the model is unavailable
FALLBACK_RECOMMENDATIONS: List[str] = [
    "Monitor for official updates",
    "Verify through additional sources",
]


def affected_radius_km(disaster_type: str, severity: str) -> float:
    """Base radius for a type scaled by severity."""
    base = AFFECTED_RADIUS_KM.get(disaster_type, DEFAULT_AFFECTED_RADIUS_KM)
    return base * SEVERITY_RADIUS_MULTIPLIERS.get(severity, 1.0)


def active_duration(disaster_type: str) -> timedelta:
    """How long an event of this type is considered active."""
    return ACTIVE_DURATION.get(disaster_type, DEFAULT_ACTIVE_DURATION)
