"""Key-value storage for disaster events and alerts with TTL expiry.

Follows the same patterns as the other stores:
- O(1) lookup by id
- Safe concurrent access with an asyncio lock
- Optional JSON persistence

Events expire after ``settings.event_ttl_days`` and alerts after
``settings.alert_ttl_days``. Expired records are invisible to reads and
dropped by :meth:`EventStore.purge_expired`.

Usage:
    from eas_system.data_management.event_store import EventStore

    store = EventStore()
    await store.save_event(event)
    await store.update_event(event.event_id, state=EventState.CLASSIFIED)
    event = await store.get_event(event.event_id)
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from eas_system.config.settings import settings
from eas_system.data_management.schemas import Alert, DisasterEvent, EventState
from eas_system.errors import ClassificationLockedError, EventNotFoundError
from eas_system.utils.logging import get_structured_logger


class EventStore:
    """Storage for DisasterEvent and Alert records keyed by id.

    Data structure:
    {
        "events": {event_id: {"record": {...}, "expires_at": "..."}},
        "alerts": {alert_id: {"record": {...}, "expires_at": "..."}},
    }

    Records are stored as JSON-mode dicts, so every read returns a fresh
    model and callers never share mutable state through the store.
    """

    def __init__(
        self,
        persistence_path: Optional[str] = None,
        event_ttl: Optional[timedelta] = None,
        alert_ttl: Optional[timedelta] = None,
    ) -> None:
        """Initialize EventStore.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.
            event_ttl: Event time-to-live (defaults to settings).
            alert_ttl: Alert time-to-live (defaults to settings).
        """
        self._events: dict[str, dict[str, Any]] = {}
        self._alerts: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._event_ttl = event_ttl or timedelta(days=settings.event_ttl_days)
        self._alert_ttl = alert_ttl or timedelta(days=settings.alert_ttl_days)
        self._logger = get_structured_logger("EventStore")

        if self._persistence_path and self._persistence_path.exists():
            self._load_from_file()

    # ── Events ────────────────────────────────────────────────────────

    async def save_event(self, event: DisasterEvent, now: Optional[datetime] = None) -> None:
        """Insert or replace an event, resetting its TTL."""
        now = now or datetime.now(timezone.utc)
        async with self._lock:
            self._events[event.event_id] = {
                "record": event.model_dump(mode="json"),
                "expires_at": (now + self._event_ttl).isoformat(),
            }
            self._logger.debug(
                "event_saved",
                event_id=event.event_id,
                state=event.state.value,
            )
            if self._persistence_path:
                self._save_to_file()

    async def get_event(self, event_id: str, now: Optional[datetime] = None) -> DisasterEvent:
        """Get a live event.

        Raises:
            EventNotFoundError: Unknown or expired id.
        """
        async with self._lock:
            entry = self._live_entry(self._events, event_id, now)
            if entry is None:
                raise EventNotFoundError(event_id)
            return DisasterEvent.model_validate(entry["record"])

    async def find_event(self, event_id: str) -> Optional[DisasterEvent]:
        """Like get_event but returns None for unknown ids."""
        try:
            return await self.get_event(event_id)
        except EventNotFoundError:
            return None

    async def update_event(self, event_id: str, **fields: Any) -> DisasterEvent:
        """Partially update a live event.

        Only the named attributes change; the TTL is kept. The merged
        record is re-validated, so a bad value raises before anything is
        written. An attached classification is never replaced.

        Args:
            event_id: Event identifier.
            **fields: Attribute values to overwrite.

        Returns:
            The updated event.

        Raises:
            EventNotFoundError: Unknown or expired id.
            ClassificationLockedError: fields replaces an attached classification.
        """
        async with self._lock:
            entry = self._live_entry(self._events, event_id, None)
            if entry is None:
                raise EventNotFoundError(event_id)

            current = DisasterEvent.model_validate(entry["record"])
            if "classification" in fields and current.classification is not None:
                raise ClassificationLockedError(event_id)
            merged = current.model_dump()
            merged.update(fields)
            updated = DisasterEvent.model_validate(merged)
            entry["record"] = updated.model_dump(mode="json")

            self._logger.debug(
                "event_updated",
                event_id=event_id,
                fields=sorted(fields),
            )
            if self._persistence_path:
                self._save_to_file()
            return updated

    async def list_events(
        self,
        state: Optional[EventState] = None,
        now: Optional[datetime] = None,
    ) -> list[DisasterEvent]:
        """All live events, optionally filtered by lifecycle state."""
        async with self._lock:
            events = [
                DisasterEvent.model_validate(entry["record"])
                for event_id in list(self._events)
                if (entry := self._live_entry(self._events, event_id, now)) is not None
            ]
        if state is not None:
            events = [event for event in events if event.state == state]
        return events

    # ── Alerts ────────────────────────────────────────────────────────

    async def save_alert(self, alert: Alert, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        async with self._lock:
            self._alerts[alert.alert_id] = {
                "record": alert.model_dump(mode="json"),
                "expires_at": (now + self._alert_ttl).isoformat(),
            }
            self._logger.info(
                "alert_saved",
                alert_id=alert.alert_id,
                event_id=alert.event_id,
                priority=alert.priority.value,
            )
            if self._persistence_path:
                self._save_to_file()

    async def get_alert(self, alert_id: str, now: Optional[datetime] = None) -> Alert:
        async with self._lock:
            entry = self._live_entry(self._alerts, alert_id, now)
            if entry is None:
                raise EventNotFoundError(alert_id)
            return Alert.model_validate(entry["record"])

    async def list_alerts(
        self,
        active_only: bool = False,
        now: Optional[datetime] = None,
    ) -> list[Alert]:
        """Live alerts; with active_only, only those inside their active window."""
        now = now or datetime.now(timezone.utc)
        async with self._lock:
            alerts = [
                Alert.model_validate(entry["record"])
                for alert_id in list(self._alerts)
                if (entry := self._live_entry(self._alerts, alert_id, now)) is not None
            ]
        if active_only:
            alerts = [alert for alert in alerts if alert.is_active(now)]
        return alerts

    # ── Maintenance ───────────────────────────────────────────────────

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop expired events and alerts.

        Returns:
            Number of records removed.
        """
        now = now or datetime.now(timezone.utc)
        removed = 0
        async with self._lock:
            for table in (self._events, self._alerts):
                expired = [key for key, entry in table.items() if self._is_expired(entry, now)]
                for key in expired:
                    del table[key]
                removed += len(expired)

            if removed:
                self._logger.info("records_expired", removed=removed)
                if self._persistence_path:
                    self._save_to_file()
        return removed

    async def get_stats(self) -> dict[str, Any]:
        """Counts by state plus alert totals."""
        events = await self.list_events()
        by_state: dict[str, int] = {state.value: 0 for state in EventState}
        for event in events:
            by_state[event.state.value] += 1
        alerts = await self.list_alerts()
        return {
            "total_events": len(events),
            "events_by_state": by_state,
            "total_alerts": len(alerts),
            "active_alerts": sum(1 for alert in alerts if alert.is_active()),
            "persistence_enabled": self._persistence_path is not None,
        }

    # ── Internals ─────────────────────────────────────────────────────

    @staticmethod
    def _is_expired(entry: dict[str, Any], now: datetime) -> bool:
        return datetime.fromisoformat(entry["expires_at"]) <= now

    def _live_entry(
        self,
        table: dict[str, dict[str, Any]],
        key: str,
        now: Optional[datetime],
    ) -> Optional[dict[str, Any]]:
        entry = table.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, now or datetime.now(timezone.utc)):
            return None
        return entry

    def _save_to_file(self) -> None:
        """Save current storage to JSON file (synchronous)."""
        if not self._persistence_path:
            return

        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._persistence_path, "w") as f:
                json.dump(
                    {"events": self._events, "alerts": self._alerts},
                    f,
                    indent=2,
                    default=str,
                )
        except OSError as e:
            self._logger.error("persist_failed", path=str(self._persistence_path), error=str(e))

    def _load_from_file(self) -> None:
        """Load storage from JSON file (synchronous)."""
        if not self._persistence_path or not self._persistence_path.exists():
            return

        try:
            with open(self._persistence_path, "r") as f:
                data = json.load(f)
            self._events = data.get("events", {})
            self._alerts = data.get("alerts", {})
            self._logger.info(
                "store_loaded",
                path=str(self._persistence_path),
                events=len(self._events),
                alerts=len(self._alerts),
            )
        except (OSError, json.JSONDecodeError) as e:
            self._logger.error("load_failed", path=str(self._persistence_path), error=str(e))
            self._events = {}
            self._alerts = {}
