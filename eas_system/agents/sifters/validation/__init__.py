"""Multi-source validation of classified disasters.

Components:
- strategies: per-type source queries and vote scoring
- ConfidenceFusionEngine: votes -> confidence, severity, confirmation
- ValidationAgent: geocoding, concurrent fan-out, fusion
"""

from eas_system.agents.sifters.validation.confidence_fusion import ConfidenceFusionEngine
from eas_system.agents.sifters.validation.strategies import (
    STRATEGIES,
    SourceClients,
    SourceQuery,
    ValidationContext,
    select_strategy,
)
from eas_system.agents.sifters.validation.validation_agent import ValidationAgent

__all__ = [
    "ConfidenceFusionEngine",
    "STRATEGIES",
    "SourceClients",
    "SourceQuery",
    "ValidationAgent",
    "ValidationContext",
    "select_strategy",
]
