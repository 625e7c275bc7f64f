"""Exceptions raised by the event lifecycle and event store.

Source and model failures never surface as exceptions: they are absorbed
into votes and classifier fallbacks. Only programming errors in the
lifecycle and lookups of unknown events raise.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for lifecycle errors."""


class InvalidTransitionError(PipelineError):
    """An event was asked to move to a state its current state cannot reach."""

    def __init__(self, event_id: str, current: str, target: str, reason: Optional[str] = None):
        self.event_id = event_id
        self.current = current
        self.target = target
        message = f"Event {event_id} cannot transition {current} -> {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EventNotFoundError(PipelineError, KeyError):
    """No live event (or alert) is stored under the requested id."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(event_id)

    def __str__(self) -> str:
        return f"Event not found: {self.event_id}"


class ClassificationLockedError(PipelineError):
    """An update tried to replace a classification already attached to an event."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} already has a classification")
