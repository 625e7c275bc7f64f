"""Tests for EventStore event/alert storage with TTL expiry."""

from datetime import datetime, timedelta, timezone

import pytest

from eas_system.data_management.event_store import EventStore
from eas_system.data_management.schemas import (
    Alert,
    ClassificationResult,
    DisasterEvent,
    DisasterType,
    EventState,
    RawPost,
    Severity,
)
from eas_system.errors import ClassificationLockedError, EventNotFoundError


def _event(event_id: str = "t3_abc", title: str = "Flooding in Houston") -> DisasterEvent:
    return DisasterEvent(event_id=event_id, post=RawPost(post_id=event_id, title=title))


def _alert(event: DisasterEvent, created: datetime) -> Alert:
    return Alert(
        alert_id=f"alert_{event.event_id}",
        event_id=event.event_id,
        disaster_type=DisasterType.EARTHQUAKE,
        severity=Severity.HIGH,
        confidence=88.0,
        created_at=created,
    )


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> EventStore:
    return EventStore()


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc)


# ── Events ────────────────────────────────────────────────────────────────


class TestEvents:
    """Event CRUD."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, store: EventStore) -> None:
        event = _event()
        await store.save_event(event)

        loaded = await store.get_event("t3_abc")

        assert loaded == event
        assert loaded is not event

    @pytest.mark.asyncio
    async def test_get_unknown_raises(self, store: EventStore) -> None:
        with pytest.raises(EventNotFoundError) as exc_info:
            await store.get_event("missing")
        assert exc_info.value.event_id == "missing"
        assert await store.find_event("missing") is None

    @pytest.mark.asyncio
    async def test_update_changes_only_named_fields(self, store: EventStore) -> None:
        await store.save_event(_event())
        classification = ClassificationResult(
            is_disaster=True,
            disaster_type=DisasterType.FLOOD,
            confidence=85,
            location="Houston",
        )

        updated = await store.update_event(
            "t3_abc",
            classification=classification,
            state=EventState.CLASSIFIED,
            confidence=85.0,
        )
        loaded = await store.get_event("t3_abc")

        assert updated.state == EventState.CLASSIFIED
        assert loaded.classification == classification
        assert loaded.confidence == 85.0
        assert loaded.post.title == "Flooding in Houston"
        assert loaded.validation is None
        assert loaded.severity == Severity.LOW

    @pytest.mark.asyncio
    async def test_update_unknown_raises(self, store: EventStore) -> None:
        with pytest.raises(EventNotFoundError):
            await store.update_event("missing", state=EventState.CLASSIFIED)

    @pytest.mark.asyncio
    async def test_classification_never_replaced(self, store: EventStore) -> None:
        original = ClassificationResult(
            is_disaster=True, disaster_type=DisasterType.EARTHQUAKE, confidence=90
        )
        await store.save_event(_event())
        await store.update_event("t3_abc", classification=original, state=EventState.CLASSIFIED)

        with pytest.raises(ClassificationLockedError):
            await store.update_event(
                "t3_abc", classification=ClassificationResult(is_disaster=False, confidence=1)
            )

        loaded = await store.get_event("t3_abc")
        assert loaded.classification == original
        updated = await store.update_event("t3_abc", confidence=95.0)
        assert updated.classification == original

    @pytest.mark.asyncio
    async def test_invalid_update_leaves_record_untouched(self, store: EventStore) -> None:
        await store.save_event(_event())

        with pytest.raises(ValueError):
            await store.update_event("t3_abc", confidence=250.0)

        assert (await store.get_event("t3_abc")).confidence == 0.0

    @pytest.mark.asyncio
    async def test_list_by_state(self, store: EventStore) -> None:
        await store.save_event(_event("a"))
        await store.save_event(_event("b"))
        await store.update_event("b", state=EventState.CLASSIFIED)

        classified = await store.list_events(state=EventState.CLASSIFIED)

        assert [e.event_id for e in classified] == ["b"]
        assert len(await store.list_events()) == 2


# ── Expiry ────────────────────────────────────────────────────────────────


class TestExpiry:
    """TTL handling."""

    @pytest.mark.asyncio
    async def test_expired_event_invisible(self, now: datetime) -> None:
        store = EventStore(event_ttl=timedelta(hours=1))
        await store.save_event(_event(), now=now)

        assert await store.get_event("t3_abc", now=now + timedelta(minutes=59))
        with pytest.raises(EventNotFoundError):
            await store.get_event("t3_abc", now=now + timedelta(hours=1))
        assert await store.list_events(now=now + timedelta(hours=2)) == []

    @pytest.mark.asyncio
    async def test_purge_expired(self, now: datetime) -> None:
        store = EventStore(event_ttl=timedelta(hours=1), alert_ttl=timedelta(hours=1))
        event = _event()
        await store.save_event(event, now=now - timedelta(hours=2))
        await store.save_event(_event("fresh"), now=now)
        await store.save_alert(_alert(event, now), now=now - timedelta(hours=2))

        removed = await store.purge_expired(now=now)

        assert removed == 2
        assert [e.event_id for e in await store.list_events(now=now)] == ["fresh"]
        assert await store.purge_expired(now=now) == 0


# ── Alerts ────────────────────────────────────────────────────────────────


class TestAlerts:
    """Alert storage."""

    @pytest.mark.asyncio
    async def test_save_and_get_alert(self, store: EventStore, now: datetime) -> None:
        alert = _alert(_event(), now)
        await store.save_alert(alert)

        assert await store.get_alert(alert.alert_id) == alert
        with pytest.raises(EventNotFoundError):
            await store.get_alert("alert_missing")

    @pytest.mark.asyncio
    async def test_active_only_uses_type_window(self, store: EventStore, now: datetime) -> None:
        fresh = _alert(_event("fresh"), now - timedelta(hours=2))
        # Earthquake alerts stay active for 24 hours
        stale = _alert(_event("stale"), now - timedelta(hours=30))
        await store.save_alert(fresh)
        await store.save_alert(stale)

        active = await store.list_alerts(active_only=True, now=now)

        assert [a.alert_id for a in active] == ["alert_fresh"]
        assert len(await store.list_alerts(now=now)) == 2

    @pytest.mark.asyncio
    async def test_stats(self, store: EventStore, now: datetime) -> None:
        event = _event()
        await store.save_event(event)
        await store.save_alert(_alert(event, now))

        stats = await store.get_stats()

        assert stats["total_events"] == 1
        assert stats["events_by_state"]["ingested"] == 1
        assert stats["total_alerts"] == 1
        assert stats["active_alerts"] == 1
        assert stats["persistence_enabled"] is False


# ── Persistence ───────────────────────────────────────────────────────────


class TestPersistence:
    """JSON file round trip."""

    @pytest.mark.asyncio
    async def test_reload_from_disk(self, tmp_path, now: datetime) -> None:
        path = tmp_path / "events.json"
        store = EventStore(persistence_path=str(path))
        event = _event()
        await store.save_event(event)
        await store.save_alert(_alert(event, now))

        reloaded = EventStore(persistence_path=str(path))

        assert path.exists()
        assert await reloaded.get_event("t3_abc") == event
        assert len(await reloaded.list_alerts()) == 1

    @pytest.mark.asyncio
    async def test_corrupt_file_starts_empty(self, tmp_path) -> None:
        path = tmp_path / "events.json"
        path.write_text("{not json")

        store = EventStore(persistence_path=str(path))

        assert await store.list_events() == []
