"""Prompt templates for LLM-backed agents.

Modules:
    classification_prompts: Disaster classification prompt
"""

from eas_system.config.prompts.classification_prompts import (
    DISASTER_CLASSIFICATION_PROMPT,
)

__all__ = [
    "DISASTER_CLASSIFICATION_PROMPT",
]
