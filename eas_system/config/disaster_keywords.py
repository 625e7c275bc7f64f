"""Disaster keyword lexicon for the keyword pre-filter.

Categories are scored independently: every distinct keyword found in a
post adds its category weight once, regardless of how many times it
occurs. Category order matters only for tie-breaking when choosing the
dominant category.

Category weights (most to least indicative):
1. Seismic: 8
2. Water, fire, geological: 7
3. Weather, winter: 6
4. Impact: 5
5. Emergency: 4
6. Alerts: 3
"""

from typing import Dict, List

DISASTER_KEYWORDS: Dict[str, List[str]] = {
    "seismic": [
        "earthquake", "quake", "tremor", "seismic", "magnitude", "richter",
        "aftershock", "epicenter", "fault line", "tectonic",
    ],
    "water": [
        "tsunami", "flood", "flooding", "flash flood", "storm surge",
        "dam break", "levee", "overflow", "inundation", "deluge",
    ],
    "weather": [
        "hurricane", "typhoon", "cyclone", "tornado", "twister",
        "thunderstorm", "severe weather", "hailstorm", "lightning storm",
    ],
    "fire": [
        "wildfire", "forest fire", "brush fire", "fire storm",
        "arson", "explosion", "blaze", "inferno",
    ],
    "winter": [
        "blizzard", "snowstorm", "ice storm", "avalanche",
        "freezing rain", "whiteout", "snow emergency",
    ],
    "geological": [
        "landslide", "mudslide", "rockslide", "sinkhole",
        "volcanic eruption", "lava flow", "ash cloud",
    ],
    "impact": [
        "casualties", "fatalities", "deaths", "injured", "missing",
        "trapped", "displaced", "evacuated", "homeless", "damage",
        "destroyed", "collapsed", "devastated",
    ],
    "emergency": [
        "emergency", "crisis", "disaster", "catastrophe",
        "evacuation", "rescue", "relief", "aid", "shelter",
        "state of emergency", "martial law",
    ],
    "alerts": [
        "alert", "warning", "watch", "advisory", "urgent",
        "breaking", "developing", "ongoing", "active",
    ],
}

CATEGORY_WEIGHTS: Dict[str, int] = {
    "seismic": 8,
    "water": 7,
    "weather": 6,
    "fire": 7,
    "winter": 6,
    "geological": 7,
    "impact": 5,
    "emergency": 4,
    "alerts": 3,
}

# Weight for a category missing from CATEGORY_WEIGHTS
DEFAULT_CATEGORY_WEIGHT = 1

# Bonus when the text quotes a magnitude ("6.2 magnitude", "richter 7")
MAGNITUDE_BONUS = 10

# Bonus when a location phrase can be extracted
LOCATION_BONUS = 5

# Pre-filter confidence = min(score * multiplier, cap)
CONFIDENCE_MULTIPLIER = 5
CONFIDENCE_CAP = 95

# Categories that name a disaster; impact/emergency/alerts only amplify
CATEGORY_TO_DISASTER_TYPE: Dict[str, str] = {
    "seismic": "earthquake",
    "water": "flood",
    "weather": "storm",
    "fire": "wildfire",
    "winter": "blizzard",
    "geological": "landslide",
}

MAGNITUDE_PATTERNS: List[str] = [
    r"\b\d+(?:\.\d+)?\s*(?:magnitude|richter)\b",
    r"\b(?:magnitude|richter)\s+(?:of\s+)?\d+(?:\.\d+)?\b",
]

# Applied to the original-case text; first match wins
LOCATION_PATTERNS: List[str] = [
    r"\b(?:in|near|at)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*(?:\s*,\s*[A-Z][A-Z])?)",
    r"\b([A-Z][a-z]+\s+(?:County|City|State|Province))\b",
    r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+area\b",
]
