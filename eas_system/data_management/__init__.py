"""Data management package for the disaster event system.

Provides schemas and the storage adapter for:
- Events (DisasterEvent) - aggregate root advanced by the pipeline
- Alerts (Alert) - public alert records for confirmed events

Storage adapters:
- EventStore: key-value event/alert persistence with TTL expiry
"""

from eas_system.data_management.event_store import EventStore

__all__ = [
    "EventStore",
]
