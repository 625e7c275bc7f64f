"""Sifter agents for analyzing posts and classified events.

Sifters are the analytical arm of the alert pipeline:
- KeywordPreFilter: Post text -> KeywordSignal (cheap gate)
- DisasterClassifier: Post + KeywordSignal -> ClassificationResult
- ValidationAgent: Classification -> fused ValidationResult

KeywordPreFilter and DisasterClassifier inherit from BaseSifter and
implement the sift() method.
"""

from eas_system.agents.sifters.base_sifter import BaseSifter
from eas_system.agents.sifters.disaster_classifier import DisasterClassifier
from eas_system.agents.sifters.keyword_prefilter import KeywordPreFilter
from eas_system.agents.sifters.validation import ConfidenceFusionEngine, ValidationAgent

__all__ = [
    "BaseSifter",
    "ConfidenceFusionEngine",
    "DisasterClassifier",
    "KeywordPreFilter",
    "ValidationAgent",
]
